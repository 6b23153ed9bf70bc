"""Daily group pairing game: draw, propose to, steal or divorce a partner."""

from __future__ import annotations

import random
import time
from datetime import date
from typing import Callable, Iterable, Mapping, Sequence, Union

from groupbot.registry import HouseholdStatus, MarriageRecord, MarriageRegistry

COOLDOWN_SECONDS = 12 * 3600
NAME_WIDTH_LIMIT = 350
CANDIDATE_POOL = 30

CONFESSION_SUCCESS = (
    "是个勇敢的孩子(*/ω＼*) 今天的运气都降临在你的身边~\n\n",
    "(´･ω･`)对方答应了你 并表示愿意当今天的CP\n\n",
)
CONFESSION_FAILURE = (
    "今天的运气有一点背哦~明天再试试叭",
    "_(:з」∠)_下次还有机会 咱抱抱你w",
    "今天失败了惹. 摸摸头~咱明天还有机会",
)
NTR_SUCCESS = ("因为你的个人魅力~~今天他就是你的了w\n\n",)
DIVORCE_FAILURE = (
    "打是情，骂是爱，,不打不亲不相爱。答应我不要分手。",
    "床头打架床尾和，夫妻没有隔夜仇。安啦安啦，不要闹变扭。",
)
DIVORCE_SUCCESS = (
    "离婚成功力\n天涯何处无芳草，何必单恋一枝花？不如再摘一支（bushi",
    "离婚成功力\n话说你不考虑当个1？",
)

SKILL_COOLDOWN_TEXT = "你的技能现在正在CD中"
DIVORCE_COOLDOWN_TEXT = "打灭，禁止离婚  (你的技能正在CD中)"
NOT_MARRIED_TEXT = "今天你还没有结婚哦"
STILL_SINGLE_TEXT = "ta现在还是单身哦，快向ta表白吧！"
ALREADY_TOGETHER_TEXT = "笨蛋~你们明明已经在一起了啊w"
NO_SINGLES_TEXT = "~群里没有ta人是单身了哦 明天再试试叭"
MISSED_TEXT = "呜...没娶到，你可以再尝试一次"

Names = Union[Mapping[int, str], Callable[[int], str]]


class Cooldown:
    """Allows one use per group member in each period."""

    def __init__(
        self,
        period: float = COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.period = period
        self._clock = clock
        self._ready: dict[str, float] = {}

    def acquire(self, gid: int, uid: int) -> bool:
        """Take the member's use for this period; False while cooling down."""
        key = f"{gid}{uid}"
        now = self._clock()
        if now < self._ready.get(key, float("-inf")):
            return False
        self._ready[key] = now + self.period
        return True


def _pick(seq: Sequence, rng) -> object:
    return seq[rng.randrange(len(seq))]


def _name_of(names: Names, uid: int) -> str:
    if callable(names):
        return names(uid)
    return names.get(uid, str(uid))


def _target_of(record: MarriageRecord | None) -> int:
    return record.target if record is not None else 0


def _announce(name: str, uid: int) -> str:
    return f"\n[{name}]({uid})哒"


def slice_name(
    name: str, measure: Callable[[str], float], limit: int = NAME_WIDTH_LIMIT
) -> str:
    """Shorten a name whose drawn width exceeds the limit, ending it with dots."""
    width = 0
    last_fit = 0
    for i, ch in enumerate(name):
        width += int(measure(ch))
        if width > limit:
            break
        last_fit = i
    if width > limit:
        return name[: max(last_fit - 1, 0)] + "......"
    return name


def ensure_today(registry: MarriageRegistry, gid: int, today: date) -> bool:
    """Reset the group's registry when it was last renewed on another day.

    Returns True when a reset happened.
    """
    if registry.check_update(gid, today) != today:
        registry.reset(gid, today)
        return True
    return False


def check_proposal(
    registry: MarriageRegistry, gid: int, uid: int, fiancee: int, today: date
) -> str | None:
    """Return the refusal for a proposal, or None when both may marry."""
    if ensure_today(registry, gid, today):
        return None
    user_record, user_status = registry.lookup(gid, uid)
    target_record, target_status = registry.lookup(gid, fiancee)
    if user_status is HouseholdStatus.SINGLE and target_status is HouseholdStatus.SINGLE:
        return None
    if _target_of(user_record) == fiancee:
        return ALREADY_TOGETHER_TEXT
    if user_status is not HouseholdStatus.SINGLE and _target_of(user_record) == 0:
        return "今天的你是单身贵族噢"
    if user_status is HouseholdStatus.HUSBAND:
        return "笨蛋~你家里还有个吃白饭的w"
    if user_status is HouseholdStatus.WIFE:
        return "该是0就是0，当0有什么不好"
    if target_status is not HouseholdStatus.SINGLE and _target_of(target_record) == 0:
        return "今天的ta是单身贵族噢"
    if target_status is HouseholdStatus.HUSBAND:
        return "他有别的女人了，你该放下了"
    if target_status is HouseholdStatus.WIFE:
        return "这是一个纯爱的世界，拒绝NTR"
    return None


def check_mistress(
    registry: MarriageRegistry, gid: int, uid: int, fiancee: int, today: date
) -> str | None:
    """Return the refusal for stealing someone's partner, or None when allowed."""
    if ensure_today(registry, gid, today):
        return STILL_SINGLE_TEXT
    user_record, user_status = registry.lookup(gid, uid)
    if _target_of(user_record) == fiancee:
        return ALREADY_TOGETHER_TEXT
    if user_status is not HouseholdStatus.SINGLE and _target_of(user_record) == 0:
        return "今天的你是单身贵族哦"
    if fiancee == uid:
        return None
    if user_status is HouseholdStatus.HUSBAND:
        return "打灭，不给纳小妾！"
    if user_status is HouseholdStatus.WIFE:
        return "该是0就是0，当0有什么不好"
    target_record, target_status = registry.lookup(gid, fiancee)
    if target_status is HouseholdStatus.SINGLE:
        return STILL_SINGLE_TEXT
    if _target_of(target_record) == 0:
        return "今天的ta是单身贵族哦"
    return None


def check_divorce(
    registry: MarriageRegistry, gid: int, uid: int, today: date
) -> str | None:
    """Return the refusal for a divorce, or None when the member is married."""
    if ensure_today(registry, gid, today):
        return NOT_MARRIED_TEXT
    _, status = registry.lookup(gid, uid)
    if status is HouseholdStatus.SINGLE:
        return NOT_MARRIED_TEXT
    return None


def draw_wife(
    registry: MarriageRegistry,
    gid: int,
    uid: int,
    members: Iterable[tuple[int, int]],
    names: Names,
    today: date,
    rng=None,
) -> str:
    """Draw a random single partner among the most recently active members.

    ``members`` holds (user id, last sent time) pairs.
    """
    rng = rng if rng is not None else random.Random()
    ensure_today(registry, gid, today)
    record, status = registry.lookup(gid, uid)
    if status is not HouseholdStatus.SINGLE:
        if record.target == 0:
            return "今天你是单身贵族噢"
        if status is HouseholdStatus.HUSBAND:
            return "今天你已经娶过了，群老婆是" + _announce(record.targetname, record.target)
        return "今天你被娶了，群老公是" + _announce(record.username, record.user)
    recent = sorted(members, key=lambda member: member[1])[-CANDIDATE_POOL:]
    singles = [
        member_id
        for member_id, _ in recent
        if registry.lookup(gid, member_id)[1] is HouseholdStatus.SINGLE
    ]
    if len(singles) <= 1:
        return NO_SINGLES_TEXT
    fiancee = _pick(singles, rng)
    if fiancee == uid:
        return MISSED_TEXT
    fiancee_name = _name_of(names, fiancee)
    registry.register(gid, uid, fiancee, _name_of(names, uid), fiancee_name, today)
    return "今天你的群老婆是" + _announce(fiancee_name, fiancee)


def propose(
    registry: MarriageRegistry,
    gid: int,
    uid: int,
    fiancee: int,
    choice: str,
    names: Names,
    today: date,
    rng=None,
) -> str:
    """Propose to marry (``娶``) or be married by (``嫁``) another member."""
    rng = rng if rng is not None else random.Random()
    if uid == fiancee:
        if rng.randrange(3) == 1:
            registry.register(gid, uid, 0, "", "", today)
            return "今日获得成就：单身贵族"
        return "今日获得成就：自恋狂"
    if rng.randrange(2) == 0:
        return _pick(CONFESSION_FAILURE, rng)
    user_name = _name_of(names, uid)
    fiancee_name = _name_of(names, fiancee)
    if choice == "娶":
        registry.register(gid, uid, fiancee, user_name, fiancee_name, today)
        choice_text = "\n今天你的群老婆是"
    else:
        registry.register(gid, fiancee, uid, fiancee_name, user_name, today)
        choice_text = "\n今天你的群老公是"
    return _pick(CONFESSION_SUCCESS, rng) + choice_text + _announce(fiancee_name, fiancee)


def become_mistress(
    registry: MarriageRegistry,
    gid: int,
    uid: int,
    fiancee: int,
    names: Names,
    today: date,
    rng=None,
) -> str:
    """Try to take a married member away from their partner."""
    rng = rng if rng is not None else random.Random()
    if fiancee == uid:
        return "今日获得成就：自我攻略"
    if rng.randrange(10) // 4 != 0:
        return "失败了！可惜"
    _, status = registry.lookup(gid, fiancee)
    user_name = _name_of(names, uid)
    fiancee_name = _name_of(names, fiancee)
    if status is HouseholdStatus.SINGLE:
        return STILL_SINGLE_TEXT
    if status is HouseholdStatus.HUSBAND:
        registry.remarry(gid, fiancee, uid, fiancee_name, user_name, today)
        choice_text = "老公"
    else:
        registry.remarry(gid, uid, fiancee, user_name, fiancee_name, today)
        choice_text = "老婆"
    return (
        _pick(NTR_SUCCESS, rng)
        + f"今天你的群{choice_text}是"
        + _announce(fiancee_name, fiancee)
    )


def divorce(registry: MarriageRegistry, gid: int, uid: int, rng=None) -> str:
    """Try to divorce; succeeds one time in ten."""
    rng = rng if rng is not None else random.Random()
    record, status = registry.lookup(gid, uid)
    if status is HouseholdStatus.SINGLE:
        return NOT_MARRIED_TEXT
    if status is HouseholdStatus.HUSBAND:
        if rng.randrange(10) != 1:
            return _pick(DIVORCE_FAILURE, rng)
        registry.divorce(gid, record.target)
        return DIVORCE_SUCCESS[0]
    if rng.randrange(10) != 0:
        return _pick(DIVORCE_FAILURE, rng)
    registry.divorce(gid, record.user)
    return DIVORCE_SUCCESS[1]