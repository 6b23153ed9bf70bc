"""Run code snippets through an online compiler service."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass

import requests

API_URL = "https://tool.runoob.com/compile2.php"
_REFERER = "https://c.runoob.com/"
_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 6.1; Win64; x64; rv:87.0) Gecko/20100101 Firefox/87.0"
)
_TOKEN_ENV = "GROUPBOT_RUNCODE_TOKEN"
_TIMEOUT = 15

CUT_SUFFIX = "\n............\n............"

_JS = 'console.log("Hello World!");'
_RUBY = 'puts "Hello World!";'
_CPP = (
    "#include <iostream>\nusing namespace std;\n\nint main()\n{\n"
    '   cout << "Hello World";\n   return 0;\n}'
)
_RUST = 'fn main() {\n    println!("Hello World!");\n}'
_CSHARP = (
    "using System;\nnamespace HelloWorldApplication\n{\n   class HelloWorld\n   {\n"
    "      static void Main(string[] args)\n      {\n"
    '         Console.WriteLine("Hello World!");\n      }\n   }\n}'
)
_SHELL = "echo 'Hello World!'"
_PYTHON = 'print("Hello, World!")'
_LUA = 'var myString = "Hello, World!"\nprint(myString)'
_KOTLIN = 'fun main(args : Array<String>){\n    println("Hello World!")\n}'
_TS = 'const hello : string = "Hello World!"\nconsole.log(hello)'

TEMPLATES = {
    "py2": "print 'Hello World!'",
    "ruby": _RUBY,
    "rb": _RUBY,
    "php": "<?php\n\techo 'Hello World!';\n?>",
    "javascript": _JS,
    "js": _JS,
    "node.js": _JS,
    "scala": 'object Main {\n  def main(args:Array[String])\n  {\n    println("Hello World!")\n  }\n\t\t\n}',
    "go": 'package main\n\nimport "fmt"\n\nfunc main() {\n   fmt.Println("Hello, World!")\n}',
    "c": '#include <stdio.h>\n\nint main()\n{\n   printf("Hello, World! \n");\n   return 0;\n}',
    "c++": _CPP,
    "cpp": _CPP,
    "java": (
        "public class HelloWorld {\n    public static void main(String []args) {\n"
        '       System.out.println("Hello World!");\n    }\n}'
    ),
    "rust": _RUST,
    "rs": _RUST,
    "c#": _CSHARP,
    "cs": _CSHARP,
    "csharp": _CSHARP,
    "shell": _SHELL,
    "bash": _SHELL,
    "erlang": '% escript will ignore the first line\n\nmain(_) ->\n    io:format("Hello World!~n").',
    "perl": 'print "Hello, World!\n";',
    "python": _PYTHON,
    "py": _PYTHON,
    "swift": 'var myString = "Hello, World!"\nprint(myString)',
    "lua": _LUA,
    "pascal": "runcode Hello;\nbegin\n  writeln ('Hello, world!')\nend.",
    "kotlin": _KOTLIN,
    "kt": _KOTLIN,
    "r": 'myString <- "Hello, World!"\nprint ( myString)',
    "vb": (
        "Module Module1\n\n    Sub Main()\n"
        '        Console.WriteLine("Hello World!")\n    End Sub\n\nEnd Module'
    ),
    "typescript": _TS,
    "ts": _TS,
}


class CodeRunError(Exception):
    """The service could not run the code or reported an error."""


class UnsupportedLanguageError(CodeRunError):
    """The language is not one the service supports."""


@dataclass(frozen=True)
class RunType:
    """Language identifier and file extension expected by the service."""

    language_id: str
    file_ext: str


LANGUAGES = {
    "py2": RunType("0", "py"),
    "ruby": RunType("1", "rb"),
    "rb": RunType("1", "rb"),
    "php": RunType("3", "php"),
    "javascript": RunType("4", "js"),
    "js": RunType("4", "js"),
    "node.js": RunType("4", "js"),
    "scala": RunType("5", "scala"),
    "go": RunType("6", "go"),
    "c": RunType("7", "c"),
    "c++": RunType("7", "cpp"),
    "cpp": RunType("7", "cpp"),
    "java": RunType("8", "java"),
    "rust": RunType("9", "rs"),
    "rs": RunType("9", "rs"),
    "c#": RunType("10", "cs"),
    "cs": RunType("10", "cs"),
    "csharp": RunType("10", "cs"),
    "shell": RunType("10", "sh"),
    "bash": RunType("10", "sh"),
    "erlang": RunType("12", "erl"),
    "perl": RunType("14", "pl"),
    "python": RunType("15", "py3"),
    "py": RunType("15", "py3"),
    "swift": RunType("16", "swift"),
    "lua": RunType("17", "lua"),
    "pascal": RunType("18", "pas"),
    "kotlin": RunType("19", "kt"),
    "kt": RunType("19", "kt"),
    "r": RunType("80", "r"),
    "vb": RunType("84", "vb"),
    "typescript": RunType("1010", "ts"),
    "ts": RunType("1010", "ts"),
}


def lookup_language(language: str) -> RunType:
    """Return the run type for a language name, case-insensitively."""
    try:
        return LANGUAGES[language.lower()]
    except KeyError:
        raise UnsupportedLanguageError(f"unsupported language: {language}") from None


def template_for(language: str) -> str:
    """Return the hello-world template for a language name."""
    try:
        return TEMPLATES[language.lower()]
    except KeyError:
        raise UnsupportedLanguageError(f"unsupported language: {language}") from None


def clear_newline_suffix(text: str) -> str:
    """Remove every trailing newline."""
    return text.rstrip("\n")


def cut_too_long(text: str) -> str:
    """Truncate text longer than 30 lines or about 1000 characters."""
    last = len(text) - 1
    count = 0
    for i, ch in enumerate(text):
        if ch == "\r" and i < last and text[i + 1] == "\n":
            pass  # the following \n is counted on its own
        elif ch in "\n\r":
            count += 1
        if count > 30 or i > 1000:
            return text[: i - 1] + CUT_SUFFIX
    return text


def _string_field(data: object, key: str) -> str:
    value = data.get(key) if isinstance(data, dict) else None
    return value if isinstance(value, str) else ""


def parse_response(payload: str | bytes) -> str:
    """Extract the program output from a service response.

    Raises ``CodeRunError`` carrying the reported errors when there are any.
    """
    data = json.loads(payload)
    errors = _string_field(data, "errors")
    if errors != "\n\n":
        raise CodeRunError(cut_too_long(clear_newline_suffix(errors)))
    return cut_too_long(clear_newline_suffix(_string_field(data, "output")))


def run_code(code: str, run_type: RunType, session: requests.Session | None = None) -> str:
    """Send code to the service and return its output."""
    http = session if session is not None else requests.Session()
    headers = {
        "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
        "Referer": _REFERER,
        "User-Agent": _USER_AGENT,
    }
    form = {
        "code": code,
        "token": os.environ.get(_TOKEN_ENV, "token"),
        "stdin": "",
        "language": run_type.language_id,
        "fileext": run_type.file_ext,
    }
    try:
        response = http.post(API_URL, data=form, headers=headers, timeout=_TIMEOUT)
    except requests.RequestException as exc:
        raise CodeRunError(str(exc)) from exc
    if response.status_code != 200:
        raise CodeRunError("code not 200")
    return parse_response(response.content)