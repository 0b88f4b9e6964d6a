from ..util.log import log_time


@log_time
def subtitle_keys(*key_desc_pairs: tuple[str, str]) -> str:
    """Format key bindings for border subtitle display.

    Example:
        >>> subtitle_keys(("Y", "Yes"), ("N", "No"))
        "(Y) Yes / (N) No"
    """
    return " / ".join(f"({key}) {desc}" for key, desc in key_desc_pairs)
