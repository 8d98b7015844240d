import re

_UNSAFE_NAME_CHARS = re.compile(r"[^\w\s-]", re.ASCII)
_WHITESPACE = re.compile(r"\s+")
_REPEATED_UNDERSCORES = re.compile(r"_{2,}")


def apply_naming_pattern(
    pattern: str,
    name: str,
    sample_type: str,
    index: int | None = None,
    duration: float | None = None,
) -> str:
    """Fill ``{name}``, ``{type}``, ``{index}`` and ``{duration}`` into an export filename.

    Only the sample name is stripped of punctuation. Whitespace runs in the
    result become one underscore, and repeated underscores collapse.
    """
    result = (
        pattern.replace("{name}", _UNSAFE_NAME_CHARS.sub("", name))
        .replace("{type}", str(sample_type))
        .replace("{index}", str(index) if index is not None else "")
        .replace("{duration}", f"{duration:.2f}" if duration is not None else "")
    )
    result = _WHITESPACE.sub("_", result)
    return _REPEATED_UNDERSCORES.sub("_", result)
