import json
import sys

from typing import Any, Iterable, List, Tuple

HIDDEN = "<Value hidden - encrypted>"
DECRYPTION_FAILED = "[DECRYPTION_FAILED]"


def print_success(message: str) -> None:
    print(f"[+] {message}")


def print_info(message: str) -> None:
    print(f"[*] {message}")


def print_error(message: str) -> None:
    print(f"[!] {message}", file=sys.stderr)


def print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def print_grouped(rows: Iterable[Tuple[str, str, bool]]) -> None:
    """Print secrets as two tab-separated groups: encrypted first, then plain text."""
    rows = list(rows)
    enc = [(k, v) for k, v, e in rows if e]
    plain = [(k, v) for k, v, e in rows if not e]
    for title, group in (("Encrypted", enc), ("Plain text", plain)):
        if not group:
            continue
        print(f"{title} ({len(group)}):")
        for key, value in group:
            print(f"  {key}\t{value}")


def print_rows(header: List[str], rows: List[List[str]]) -> None:
    widths = [len(h) for h in header]
    for row in rows:
        widths = [max(w, len(str(c))) for w, c in zip(widths, row)]
    fmt = "  ".join(f"{{:<{w}}}" for w in widths)
    print(fmt.format(*header))
    for row in rows:
        print(fmt.format(*[str(c) for c in row]))
