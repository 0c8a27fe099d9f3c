"""Utility helpers for the models package."""

from __future__ import annotations

import secrets
import string
from typing import Any, Optional
from sqlalchemy.orm import Session

BASE62_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase


def generate_unique_ref(
    prefix: str,
    model_cls: Any,
    column_name: str,
    session: Optional[Session] = None,
    length: int = 12,
    max_attempts: int = 32,
) -> str:
    """Return a unique identifier of the form ``{prefix}-{base62}``.

    When a session is provided, the helper retries if the generated value is
    already present (or pending) in ``model_cls.<column_name>``.
    """
    from sqlalchemy import select

    column = getattr(model_cls, column_name)

    attempts = 0
    while attempts < max_attempts:
        suffix = "".join(secrets.choice(BASE62_ALPHABET) for _ in range(length))
        candidate = f"{prefix}-{suffix}"[:255]

        if session is not None:
            collision = any(
                isinstance(obj, model_cls) and getattr(obj, column_name, None) == candidate
                for obj in session.new
            )
            if collision:
                attempts += 1
                continue

            exists = session.scalar(select(column).where(column == candidate))
            if exists is not None:
                attempts += 1
                continue

        return candidate

    raise RuntimeError(
        f"Unable to generate a unique {model_cls.__name__}.{column_name} after multiple attempts"
    )
