from typing import Optional

from ..models.person import Role

# Every spelling seen on printed credentials and imported rosters
_ROLE_ALIASES = {
    "aprendiz": Role.APPRENTICE,
    "apprentice": Role.APPRENTICE,
    "estudiante": Role.APPRENTICE,
    "student": Role.APPRENTICE,
    "instructor": Role.INSTRUCTOR,
    "docente": Role.INSTRUCTOR,
    "administrativo": Role.ADMINISTRATIVE,
    "administrative": Role.ADMINISTRATIVE,
    "administrador": Role.ADMINISTRATIVE,
    "admin": Role.ADMINISTRATIVE,
    "funcionario": Role.ADMINISTRATIVE,
    "visitante": Role.VISITOR,
    "visitor": Role.VISITOR,
}


def normalize_role(raw: Optional[str]) -> Optional[Role]:
    """Map a free-form role string to a Role, or None when unrecognised."""
    if raw is None:
        return None
    if isinstance(raw, Role):
        return raw
    return _ROLE_ALIASES.get(str(raw).strip().lower())
