"""
Console output helpers for dexscope.

Colors come from colorama; everything is printed with plain ``print`` so the
output stays readable when piped. Status lines go to stdout, warnings, errors
and debug lines go to stderr.
"""

import sys

from colorama import Fore, Style, init

FORE_RED = Fore.RED
FORE_YELLOW = Fore.YELLOW
FORE_GREEN = Fore.GREEN
FORE_BLUE = Fore.BLUE
FORE_MAGENTA = Fore.MAGENTA
FORE_CYAN = Fore.CYAN
FORE_WHITE = Fore.WHITE
FORE_LIGHTBLUE = Fore.LIGHTBLUE_EX
FORE_LIGHTYELLOW = Fore.LIGHTYELLOW_EX
FORE_LIGHTGREEN = Fore.LIGHTGREEN_EX
FORE_LIGHTWHITE = Fore.LIGHTWHITE_EX
FORE_RESET = Fore.RESET
STYLE_BRIGHT = Style.BRIGHT
STYLE_DIM = Style.DIM
STYLE_RESET_ALL = Style.RESET_ALL

_quiet = False
_debug = False


def setup(color: bool = True, quiet: bool = False, debug: bool = False) -> None:
    """Initialise colorama and the output mode for this run.

    ``quiet`` silences ``info`` (used for JSON/CSV output so stdout stays
    machine readable). ``color=False`` makes colorama strip every ANSI code.
    """
    global _quiet, _debug
    _quiet = quiet
    _debug = debug
    if color:
        init(autoreset=True)
    else:
        init(strip=True, convert=False)


def paint(text: str, *codes: str) -> str:
    if not codes:
        return text
    return f"{''.join(codes)}{text}{STYLE_RESET_ALL}"


def info(message: str) -> None:
    if _quiet:
        return
    print(f"{FORE_CYAN}[-]{FORE_RESET} {message}")


def warn(message: str) -> None:
    print(f"{STYLE_BRIGHT}{FORE_YELLOW}{message}{STYLE_RESET_ALL}", file=sys.stderr)


def error(message: str) -> None:
    print(f"{STYLE_BRIGHT}{FORE_RED}Error: {message}{STYLE_RESET_ALL}", file=sys.stderr)


def debug(message: str) -> None:
    if not _debug:
        return
    print(f"{STYLE_DIM}[debug] {message}{STYLE_RESET_ALL}", file=sys.stderr)
