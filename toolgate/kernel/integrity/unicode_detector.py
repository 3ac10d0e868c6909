"""Detection of hidden and invisible Unicode in tool descriptions.

Unicode Tag characters can carry an invisible ASCII payload that a model still
reads; bidi controls and zero-width characters can hide or reorder text for a
human reviewer. Each flagged character is reported with its UTF-8 byte offset
so consumers can slice the original encoded buffer.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict

TAG_BLOCK_START = 0xE0000
TAG_BLOCK_END = 0xE007F

BIDI_MNEMONICS: dict[int, str] = {
    0x202A: "[LRE]",  # Left-to-Right Embedding
    0x202B: "[RLE]",  # Right-to-Left Embedding
    0x202C: "[PDF]",  # Pop Directional Formatting
    0x202D: "[LRO]",  # Left-to-Right Override
    0x202E: "[RLO]",  # Right-to-Left Override
    0x061C: "[ALM]",  # Arabic Letter Mark
    0x2066: "[LRI]",  # Left-to-Right Isolate
    0x2067: "[RLI]",  # Right-to-Left Isolate
    0x2068: "[FSI]",  # First Strong Isolate
    0x2069: "[PDI]",  # Pop Directional Isolate
}

INVISIBLE_MNEMONICS: dict[int, str] = {
    0x200B: "[ZWSP]",
    0x200C: "[ZWNJ]",
    0x200D: "[ZWJ]",
    0x2060: "[WJ]",
    0xFEFF: "[ZWNBSP/BOM]",
}


class DetectionCategory(str, Enum):
    """Kind of problematic character."""

    TAG_CHAR = "Unicode Tag (U+E0000-U+E007F)"
    BIDI_CONTROL = "Bidirectional Control"
    DEPRECATED_CHAR = "Deprecated/Non-Character"
    INVISIBLE_FMT = "Invisible Formatting"


class DetectedCharInfo(BaseModel):
    """One flagged character in a scanned string."""

    model_config = ConfigDict(frozen=True)

    rune: str
    code_point: int
    hex: str  # e.g. "U+E0020"
    index: int  # UTF-8 byte offset in the original string
    category: DetectionCategory
    translated: str = ""


def is_tag(code_point: int) -> bool:
    return TAG_BLOCK_START <= code_point <= TAG_BLOCK_END


def is_bidi_control(code_point: int) -> bool:
    """Check for bidirectional control characters (see Unicode TR9)."""
    return (
        0x202A <= code_point <= 0x202E
        or 0x2066 <= code_point <= 0x2069
        or code_point == 0x061C
    )


def is_invisible_formatting(code_point: int) -> bool:
    # ZWJ has legitimate uses (emoji sequences) but is still reported
    return code_point in INVISIBLE_MNEMONICS


def is_deprecated(code_point: int) -> bool:
    """Check for non-characters: U+FDD0..U+FDEF and U+nFFFE / U+nFFFF."""
    if 0xFDD0 <= code_point <= 0xFDEF:
        return True
    return (code_point & 0xFFFE) == 0xFFFE


def _translate_tag(code_point: int) -> str:
    if 0xE0020 <= code_point <= 0xE007E:
        return chr(code_point - TAG_BLOCK_START)
    if code_point == 0xE007F:
        return "[Cancel Tag]"
    if code_point == 0xE0001:
        return "[Start Tag]"
    return ""


def _classify(code_point: int) -> tuple[DetectionCategory, str] | None:
    if is_tag(code_point):
        return DetectionCategory.TAG_CHAR, _translate_tag(code_point)
    if is_bidi_control(code_point):
        return DetectionCategory.BIDI_CONTROL, BIDI_MNEMONICS.get(code_point, "[Bidi]")
    if is_invisible_formatting(code_point):
        return DetectionCategory.INVISIBLE_FMT, INVISIBLE_MNEMONICS[code_point]
    if is_deprecated(code_point):
        return DetectionCategory.DEPRECATED_CHAR, "[Deprecated/NonChar]"
    return None


def detect_hidden_unicode(text: str) -> list[DetectedCharInfo]:
    """Scan text for tag, bidi, invisible and non-character code points.

    Args:
        text: String to scan

    Returns:
        One DetectedCharInfo per flagged character, in order. Empty means clean.
    """
    detected: list[DetectedCharInfo] = []
    offset = 0
    for char in text:
        code_point = ord(char)
        classification = _classify(code_point)
        if classification is not None:
            category, translated = classification
            detected.append(
                DetectedCharInfo(
                    rune=char,
                    code_point=code_point,
                    hex=f"U+{code_point:04X}",
                    index=offset,
                    category=category,
                    translated=translated,
                )
            )
        offset += len(char.encode("utf-8", "surrogatepass"))
    return detected


def decode_tag_payload(text: str) -> str:
    """Recover the ASCII text smuggled in Unicode Tag characters."""
    return "".join(
        chr(ord(char) - TAG_BLOCK_START)
        for char in text
        if 0xE0020 <= ord(char) <= 0xE007E
    )
