from typing import Tuple


def split_full_name(full_name: str, surname_tokens: int = 2) -> Tuple[str, str]:
    """
    Split a display name into (given names, surnames).

    Best-effort heuristic: the last ``surname_tokens`` tokens are taken as
    surnames, but at least one token is always kept as the given name.
    "Ana Maria Lopez" -> ("Ana", "Maria Lopez") with the default of two.
    Compound given names or single surnames are not detected; the full
    display name is stored alongside so nothing is lost.
    """
    parts = full_name.split()
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""

    count = max(1, min(surname_tokens, len(parts) - 1))
    return " ".join(parts[:-count]), " ".join(parts[-count:])
