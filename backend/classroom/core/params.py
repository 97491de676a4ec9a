from __future__ import annotations

import uuid

from fastapi import HTTPException


def parse_uuid(value: str, *, field: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"invalid {field}") from e
