"""Pure document number formatting."""

DEFAULT_WIDTH = 4
DEFAULT_SUFFIX = "SMKT/OPR"


def format_document_number(
    number: int,
    period: int,
    *,
    width: int = DEFAULT_WIDTH,
    suffix: str = DEFAULT_SUFFIX,
) -> str:
    """Format an issued counter value as a human-facing document number.

    >>> format_document_number(1, 2024)
    '2024/0001/SMKT/OPR'

    Numbers wider than ``width`` are kept whole (``2024/12345/SMKT/OPR``).
    """
    if number < 1:
        raise ValueError(f"Document numbers start at 1, got {number}")
    return f"{period}/{number:0{width}d}/{suffix}"
