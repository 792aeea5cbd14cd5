"""
Normalização de referências de identidade.

Os clientes enviam ids em vários formatos: string crua, inteiro, UUID,
objetos populados (``{"_id": ...}`` / ``{"id": ...}``) e contêineres
encapsulados (``{"$oid": ...}``). Todo id que entra no domínio passa
por ``resolve_id``.
"""
from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from typing import Any

_WRAPPER_KEYS = ("$oid", "$uuid")
_ID_KEYS = ("_id", "id")
_MAX_DEPTH = 8


def _canonical_text(text: str) -> str | None:
    """UUID em texto (com ou sem hífens) vira hex, como um ``uuid.UUID``."""
    text = text.strip()
    if not text:
        return None
    try:
        return uuid.UUID(text).hex
    except ValueError:
        return text


def resolve_id(reference: Any, _depth: int = 0) -> str | None:
    """
    Retorna o id canônico (string) ou ``None`` para formatos desconhecidos.
    Nunca levanta exceção.
    """
    if reference is None or isinstance(reference, bool):
        return None
    if isinstance(reference, str):
        return _canonical_text(reference)
    if isinstance(reference, int):
        return str(reference)
    if isinstance(reference, uuid.UUID):
        return reference.hex
    if _depth >= _MAX_DEPTH:
        return None

    if isinstance(reference, Mapping):
        for key in _WRAPPER_KEYS + _ID_KEYS:
            if reference.get(key) is not None:
                return resolve_id(reference[key], _depth + 1)
        return None

    if isinstance(reference, bytes | float | Iterable):
        return None

    for attr in _ID_KEYS:
        value = getattr(reference, attr, None)
        if value is not None:
            return resolve_id(value, _depth + 1)
    return None


def resolve_many(references: Iterable[Any] | None) -> list[str]:
    """Resolve uma coleção preservando a ordem e descartando o que não resolve."""
    if references is None:
        return []
    resolved = (resolve_id(ref) for ref in references)
    return [ref for ref in resolved if ref is not None]


def require_id(reference: Any, field: str = "id") -> str:
    """Versão estrita para validação de payloads (compatível com pydantic)."""
    resolved = resolve_id(reference)
    if resolved is None:
        raise ValueError(f"{field}: referência de identidade inválida")
    return resolved


def new_id() -> str:
    """Gera um id opaco novo no formato canônico."""
    return uuid.uuid4().hex
