"""
seaptc/services/blob_codecs.py
Encoding and decoding of named blobs, and how each versioned blob is applied
to a Conference value.

`configuration` is camelCase JSON so that it can be edited by hand. All other
blobs use the pydantic JSON encoding of their typed model, which tolerates
fields added later. Every process sharing the database must use these codecs.
"""
import json
import logging
import typing
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set

from pydantic import BaseModel, TypeAdapter, ValidationError

from seaptc.conference.conference import Conference
from seaptc.conference.evaluation import Evaluation
from seaptc.conference.models import ConferenceClass, Configuration, Participant
from seaptc.exceptions import BlobDecodeError, ConfigurationInvalidError, UnknownBlobError

logger = logging.getLogger(__name__)

CONFIGURATION = "configuration"
CLASSES = "classes"
PARTICIPANTS = "participants"
INSTRUCTOR_CLASSES = "instructorClasses"
LOGIN_CODES = "loginCodes"
PRINT_SIGNATURES = "printSignatures"


@dataclass(frozen=True)
class BlobCodec:
    """
    Codec for one blob name.

    `apply` is set for blobs written with a version stamp; a snapshot refresh
    uses it to fold the decoded value into the Conference. Blobs without
    `apply` are read directly by the store.
    """
    name: str
    adapter: TypeAdapter
    apply: Optional[Callable[[Conference, Any], Conference]] = None

    def encode(self, value: Any) -> bytes:
        return self.adapter.dump_json(value, by_alias=True)

    def decode(self, data: bytes) -> Any:
        try:
            return self.adapter.validate_json(data)
        except (ValidationError, ValueError) as e:
            raise BlobDecodeError(self.name, str(e)) from e

    def decode_and_apply(self, conf: Conference, data: bytes) -> Conference:
        if self.apply is None:
            return conf
        return self.apply(conf, self.decode(data))


_REGISTRY: Dict[str, BlobCodec] = {
    c.name: c
    for c in (
        BlobCodec(CONFIGURATION, TypeAdapter(Configuration),
                  lambda conf, v: conf.update_configuration(v)),
        BlobCodec(CLASSES, TypeAdapter(List[ConferenceClass]),
                  lambda conf, v: conf.update_classes(v)),
        BlobCodec(PARTICIPANTS, TypeAdapter(List[Participant]),
                  lambda conf, v: conf.update_participants(v)),
        BlobCodec(INSTRUCTOR_CLASSES, TypeAdapter(Dict[str, List[int]]),
                  lambda conf, v: conf.update_instructor_classes(v)),
        BlobCodec(LOGIN_CODES, TypeAdapter(Dict[str, str])),
        BlobCodec(PRINT_SIGNATURES, TypeAdapter(Dict[str, str])),
    )
}

BLOB_NAMES = tuple(_REGISTRY)

EVALUATION_ADAPTER = TypeAdapter(Evaluation)


def get_codec(name: str) -> BlobCodec:
    """Return the codec registered for name; unknown names are an error."""
    codec = _REGISTRY.get(name)
    if codec is None:
        raise UnknownBlobError(name)
    return codec


# ============================================
# Configuration
# ============================================

def _model_type(annotation) -> Optional[type]:
    """The pydantic model inside Optional/Tuple/List annotations, if any."""
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    for arg in typing.get_args(annotation):
        model = _model_type(arg)
        if model is not None:
            return model
    return None


def _unknown_keys(model: type, value: Any, path: str = "") -> Set[str]:
    if isinstance(value, list):
        unknown: Set[str] = set()
        for i, item in enumerate(value):
            unknown |= _unknown_keys(model, item, f"{path}[{i}]")
        return unknown
    if not isinstance(value, dict):
        return set()

    fields = {}
    for name, info in model.model_fields.items():
        fields[info.alias or name] = info
        fields[name] = info

    prefix = f"{path}." if path else ""
    unknown = set()
    for key, item in value.items():
        info = fields.get(key)
        if info is None:
            unknown.add(f"{prefix}{key}")
            continue
        nested = _model_type(info.annotation)
        if nested is not None:
            unknown |= _unknown_keys(nested, item, f"{prefix}{key}")
    return unknown


def decode_configuration(data: bytes, strict: bool = False) -> Configuration:
    """
    Decode a configuration document.

    Unknown keys are ignored unless strict is set, in which case they raise
    ConfigurationInvalidError naming the offending keys.
    """
    if strict:
        try:
            raw = json.loads(data)
        except ValueError as e:
            raise ConfigurationInvalidError(f"config: invalid JSON: {e}")
        unknown = _unknown_keys(Configuration, raw)
        if unknown:
            raise ConfigurationInvalidError(f"config: unknown fields {', '.join(sorted(unknown))}")
    try:
        return Configuration.model_validate_json(data)
    except ValidationError as e:
        raise ConfigurationInvalidError(f"config: {e}")


def encode_configuration(config: Configuration, indent: Optional[int] = None) -> bytes:
    return config.model_dump_json(by_alias=True, indent=indent).encode("utf-8")
