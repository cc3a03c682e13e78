"""Terminal-safe output helpers.

Detects the terminal encoding and swaps the Unicode status glyphs used in
minrepro's messages for ASCII equivalents on terminals that cannot print
them (legacy Windows consoles, CI logs with a C locale).
"""
import sys
import locale


ICON_MAP = {
    '✓': '[OK]',
    '✗': '[FAIL]',
    '⚠': '[WARN]',
    '→': '->',
    '…': '...',
    '•': '*',
    '∪': 'U',
    '✂': '[cut]',
}


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding.

    Returns:
        str: Lower-cased encoding name ('utf-8', 'cp1252', 'ascii', ...)
    """
    if getattr(sys.stdout, 'encoding', None):
        return sys.stdout.encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except (ValueError, LookupError):
        return 'ascii'


def is_utf8_capable() -> bool:
    """Check if the terminal can print UTF-8 glyphs."""
    return detect_terminal_encoding().replace('_', '-') in ('utf-8', 'utf8')


def sanitize_for_terminal(text: str) -> str:
    """Replace status glyphs with ASCII when the terminal is not UTF-8.

    Args:
        text: Message text

    Returns:
        str: Text safe for the current terminal
    """
    if is_utf8_capable():
        return text

    for glyph, replacement in ICON_MAP.items():
        text = text.replace(glyph, replacement)
    return text

