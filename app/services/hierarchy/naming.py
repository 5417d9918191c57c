"""
Nommage automatique des GR et des unités.

    "Past. Jean-Marc Dupont"  -> GR_JeanMarc
    responsable sans nom exploitable -> GR_Sans_Responsable
"""
import re
from typing import Iterable, Optional

from app.models.user.user import User

# Titres ignorés en tête du nom d'usage
STATUS_PREFIXES = ("Past.", "MC.", "PE.", "CE.", "Resp.")

GROUP_NAME_PREFIX = "GR_"
UNIT_NAME_PREFIX = "Unité_"
NO_RESPONSABLE_SUFFIX = "Sans_Responsable"

_FORBIDDEN_CHARS = re.compile(r"[^a-zA-ZÀ-ÿ0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def responsable_display_name(username: Optional[str], pseudo: Optional[str] = None) -> Optional[str]:
    """
    Premier mot du nom d'usage, titre éventuel retiré.

    Repli sur le pseudo si le nom d'usage est vide ou ne contient qu'un titre.
    """
    words = (username or "").split()
    if words and words[0] in STATUS_PREFIXES:
        words = words[1:]
    if words:
        return words[0]
    return pseudo or None


def clean_name(raw: Optional[str]) -> Optional[str]:
    """Garde lettres, chiffres et espaces, puis remplace les espaces par '_'."""
    if not raw:
        return None
    cleaned = _WHITESPACE.sub("_", _FORBIDDEN_CHARS.sub("", raw).strip())
    return cleaned or None


def generate_name(prefix: str, responsables: Iterable[Optional[User]]) -> str:
    """
    Nom généré à partir du premier responsable dont le nom est exploitable.

    Args:
        prefix: GROUP_NAME_PREFIX ou UNIT_NAME_PREFIX
        responsables: responsable1 puis responsable2 (None tolérés)
    """
    for user in responsables:
        if user is None:
            continue
        cleaned = clean_name(responsable_display_name(user.username, user.pseudo))
        if cleaned:
            return f"{prefix}{cleaned}"
    return f"{prefix}{NO_RESPONSABLE_SUFFIX}"


def generate_group_name(responsables: Iterable[Optional[User]]) -> str:
    return generate_name(GROUP_NAME_PREFIX, responsables)


def generate_unit_name(responsables: Iterable[Optional[User]]) -> str:
    return generate_name(UNIT_NAME_PREFIX, responsables)
