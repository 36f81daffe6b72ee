"""
Session Codec — SessionRecord <-> plaintext bytes.

The payload is a jsonpickle document, so user profiles keep their Python
types (datetimes, datamodel and pydantic models) across a round trip::

    {"user": {...}, "createdAt": "<iso8601>", "expiresAt": "<iso8601>"}
"""
from typing import Any
from datetime import datetime
import jsonpickle
from jsonpickle.unpickler import loadclass
from datamodel import BaseModel
from pydantic import BaseModel as PydanticBaseModel, ValidationError

from .exceptions import MalformedSession
from .models import SessionRecord


class ModelHandler(jsonpickle.handlers.BaseHandler):
    """ModelHandler.
    This class can handle with serializable Data Models.
    """
    def flatten(self, obj, data):
        data['__dict__'] = self.context.flatten(obj.__dict__, reset=False)
        return data

    def restore(self, obj):
        module_and_type = obj['py/object']
        mdl = loadclass(module_and_type)
        cls = mdl.__new__(mdl) if hasattr(mdl, '__new__') else object.__new__(mdl)
        cls.__dict__ = self.context.restore(obj['__dict__'], reset=False)
        return cls


class PydanticHandler(jsonpickle.handlers.BaseHandler):
    """PydanticHandler.
    Pydantic models keep their state outside ``__dict__``; they are
    flattened through ``model_dump`` and rebuilt with ``model_validate``.
    """
    def flatten(self, obj, data):
        data['fields'] = self.context.flatten(obj.model_dump(), reset=False)
        return data

    def restore(self, obj):
        mdl = loadclass(obj['py/object'])
        return mdl.model_validate(
            self.context.restore(obj['fields'], reset=False)
        )


jsonpickle.handlers.registry.register(BaseModel, ModelHandler, base=True)
jsonpickle.handlers.registry.register(PydanticBaseModel, PydanticHandler, base=True)


def encode(record: SessionRecord) -> bytes:
    """encode.

        Serialize a session record to the plaintext sealed by the cipher.
    Args:
        record (SessionRecord): session to serialize.

    Raises:
        MalformedSession: the user object cannot be serialized.

    Returns:
        bytes: UTF-8 jsonpickle document.
    """
    payload = {
        'user': record.user,
        'createdAt': record.created_at.isoformat(),
        'expiresAt': record.expires_at.isoformat(),
    }
    try:
        return jsonpickle.encode(payload, keys=True).encode('utf-8')
    except Exception as err:
        raise MalformedSession(f"Cannot serialize session: {err}") from err


def _timestamp(payload: dict, name: str) -> datetime:
    value = payload.get(name)
    if not isinstance(value, str):
        raise MalformedSession(f"Session field {name} is missing")
    try:
        return datetime.fromisoformat(value)
    except ValueError as err:
        raise MalformedSession(f"Session field {name} is not a timestamp") from err


def decode(data: bytes) -> SessionRecord:
    """decode.

        Rebuild a session record from its plaintext.
    Args:
        data (bytes): output of ``encode``.

    Raises:
        MalformedSession: data is not a complete, valid session payload.

    Returns:
        SessionRecord: the restored session.
    """
    try:
        payload: Any = jsonpickle.decode(data.decode('utf-8'), keys=True)
    except Exception as err:
        raise MalformedSession(f"Cannot deserialize session: {err}") from err
    if not isinstance(payload, dict):
        raise MalformedSession("Session payload is not an object")
    if 'user' not in payload:
        raise MalformedSession("Session field user is missing")
    created_at = _timestamp(payload, 'createdAt')
    expires_at = _timestamp(payload, 'expiresAt')
    try:
        return SessionRecord(
            user=payload['user'],
            created_at=created_at,
            expires_at=expires_at,
        )
    except ValidationError as err:
        raise MalformedSession(f"Invalid session: {err}") from err
