"""Data formatting utilities."""

from urllib.parse import quote


def format_bytes(bytes_value: int, decimal_places: int = 2) -> str:
    """
    Format bytes to human-readable string.

    Args:
        bytes_value: Size in bytes
        decimal_places: Number of decimal places

    Returns:
        Formatted string (e.g., "1.50 GiB")
    """
    if bytes_value < 0:
        return "0 B"

    if bytes_value < 1024:
        return f"{bytes_value} B"

    units = ["B", "KiB", "MiB", "GiB", "TiB", "PiB"]
    unit_index = 0

    size = float(bytes_value)
    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    return f"{size:.{decimal_places}f} {units[unit_index]}"


def content_disposition(filename: str) -> str:
    """
    Build an attachment Content-Disposition header value.

    Names with non-ASCII or control characters are carried in the RFC 5987
    ``filename*`` parameter with a printable ASCII fallback.

    Args:
        filename: Name offered to the client

    Returns:
        Header value
    """
    # Printable ASCII only, without quote or backslash
    fallback = "".join(ch if " " <= ch <= "~" and ch not in '"\\' else "_" for ch in filename)
    if fallback == filename:
        return f'attachment; filename="{filename}"'
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"
