"""Fetch short joke, sweet-talk and insult texts from public web services."""

from __future__ import annotations

import json

import lxml.html
import requests

CHP_URL = "https://api.shadiao.app/chp"
DU_URL = "https://api.shadiao.app/du"
PYQ_URL = "https://api.shadiao.app/pyq"
YDUANZI_URL = "http://www.yduanzi.com/duanzi/getduanzi"
CHAYI_URL = "https://api.lovelive.tools/api/SweetNothings/Web/0"
GANHAI_URL = "https://api.lovelive.tools/api/SweetNothings/Web/1"
ERGOFABULOUS_URL = "https://ergofabulous.org/luther/?"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/96.0.4664.110 Safari/537.36"
)
SD_REFERER = "https://api.shadiao.app/"
YDUANZI_REFERER = "http://www.yduanzi.com/?utm_source=shadiao.app"
LOVELIVE_REFERER = "https://lovelive.tools/"

PHRASE_URLS = {"哄我": CHP_URL, "来碗毒鸡汤": DU_URL, "发个朋友圈": PYQ_URL}
SWEET_NOTHING_URLS = {"来碗绿茶": CHAYI_URL, "渣我": GANHAI_URL}

_LUTHER_XPATH = '//main[@role="main"]/p[@class="larger"]/text()'
_TIMEOUT = 30


def _text_at(payload: str | bytes, path: str) -> str:
    data = json.loads(payload)
    for key in path.split("."):
        if not isinstance(data, dict) or key not in data:
            return ""
        data = data[key]
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    return json.dumps(data, ensure_ascii=False)


def parse_phrase(payload: str | bytes) -> str:
    """Return the text of a phrase service response."""
    return _text_at(payload, "data.text")


def parse_sweet_nothing(payload: str | bytes) -> str:
    """Return the text of a sweet-nothings service response."""
    return _text_at(payload, "returnObj.content")


def parse_joke(payload: str | bytes) -> str:
    """Return the joke of a joke service response, with line breaks restored."""
    return _text_at(payload, "duanzi").replace("<br>", "\n")


def parse_luther_insult(html: str | bytes) -> str:
    """Return the insult shown on the insult generator page."""
    document = lxml.html.document_fromstring(html)
    found = document.xpath(_LUTHER_XPATH)
    if not found:
        raise ValueError("no insult found in page")
    return str(found[0])


def _request(
    session: requests.Session | None, method: str, url: str, referer: str = ""
) -> bytes:
    http = session if session is not None else requests.Session()
    headers = {"User-Agent": USER_AGENT}
    if referer:
        headers["Referer"] = referer
    response = http.request(method, url, headers=headers, timeout=_TIMEOUT)
    if response.status_code != 200:
        raise requests.HTTPError(f"status code {response.status_code}")
    return response.content


def fetch_phrase(name: str, session: requests.Session | None = None) -> str:
    """Fetch a phrase for one of the names in ``PHRASE_URLS``."""
    try:
        url = PHRASE_URLS[name]
    except KeyError:
        raise ValueError(f"unknown phrase kind: {name!r}") from None
    return parse_phrase(_request(session, "GET", url, SD_REFERER))


def fetch_sweet_nothing(kind: str, session: requests.Session | None = None) -> str:
    """Fetch a sweet nothing for one of the names in ``SWEET_NOTHING_URLS``."""
    try:
        url = SWEET_NOTHING_URLS[kind]
    except KeyError:
        raise ValueError(f"unknown sweet nothing kind: {kind!r}") from None
    return parse_sweet_nothing(_request(session, "GET", url, LOVELIVE_REFERER))


def fetch_joke(session: requests.Session | None = None) -> str:
    """Fetch a random joke."""
    return parse_joke(_request(session, "POST", YDUANZI_URL, YDUANZI_REFERER))


def fetch_luther_insult(session: requests.Session | None = None) -> str:
    """Fetch a random insult."""
    return parse_luther_insult(_request(session, "GET", ERGOFABULOUS_URL))