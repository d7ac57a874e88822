"""Contract metadata document and its on-chain encoding.

The document is serialized as compact JSON with a fixed field order,
hex-encoded from its UTF-8 bytes, and stored in the contract's metadata
big-map under the ``content`` key. The empty key holds a pointer,
``tezos-storage:content``, telling readers where to look. External readers
depend on all three (field order, key, encoding); changing any of them
breaks decoding.
"""

import asyncio
import copy
import json
import logging
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

CONTRACT_VERSION = "ZeroContractV4"
BASELINE_INTERFACES = ["TZIP-012", "TZIP-016"]

CONTENT_KEY = "content"
STORAGE_POINTER = "tezos-storage:content"

BURN_ADDRESS = "tz1burnburnburnburnburnburnburjAYjjX"

HEX_CHUNK = 4096  # bytes between progress reports

ProgressCallback = Callable[[float], Any]

TextOrList = Union[str, list[str]]


class MetadataDocument(BaseModel):
    """TZIP-16 metadata document. Field order is the serialized order."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    description: Optional[str] = None
    version: str = CONTRACT_VERSION
    license: Optional[str] = None
    authors: Optional[TextOrList] = None
    homepage: Optional[str] = None
    authoraddress: Optional[TextOrList] = None
    creators: Optional[TextOrList] = None
    type: Optional[str] = None
    interfaces: list[str] = []
    imageUri: Optional[str] = None
    views: Optional[list[Any]] = None


def interface_key(value: str) -> str:
    """Comparison key for an interface tag: no whitespace, upper case."""
    return "".join(value.split()).upper()


def uniq_interfaces(src: Optional[Iterable[Any]]) -> list[str]:
    """Merge caller interfaces with the baseline tags, without duplicates.

    Entries are compared case- and whitespace-insensitively. Each tag keeps
    the position of its first appearance and the spelling of its last, and
    since the baseline is merged after the caller's list, ``TZIP-012`` and
    ``TZIP-016`` always come out in canonical spelling.
    """
    merged: dict[str, str] = {}
    for item in [*(src or []), *BASELINE_INTERFACES]:
        value = str(item if item is not None else "").strip()
        if not value:
            continue
        merged[interface_key(value)] = value
    return list(merged.values())


def char2bytes(text: str) -> str:
    """Hex string of the UTF-8 bytes of a text."""
    return text.encode("utf-8").hex()


def _hex_chunks(data: bytes, chunk_size: int) -> Iterator[tuple[float, str]]:
    total = len(data)
    for start in range(0, total, chunk_size):
        yield start / total, data[start:start + chunk_size].hex()


def utf8_to_hex(
    text: str,
    on_progress: Optional[ProgressCallback] = None,
    chunk_size: int = HEX_CHUNK,
) -> str:
    """Hex-encode a text's UTF-8 bytes, reporting progress per chunk.

    Progress is reported at the start of every chunk as the fraction of
    bytes already encoded, then once more with 1.0.
    """
    parts = []
    for fraction, part in _hex_chunks(text.encode("utf-8"), chunk_size):
        if on_progress:
            on_progress(fraction)
        parts.append(part)
    if on_progress:
        on_progress(1.0)
    return "".join(parts)


async def encode_hex_with_progress(
    text: str,
    on_progress: Optional[ProgressCallback] = None,
    chunk_size: int = HEX_CHUNK,
) -> str:
    """Same as utf8_to_hex, yielding to the event loop between chunks."""
    parts = []
    for fraction, part in _hex_chunks(text.encode("utf-8"), chunk_size):
        if on_progress:
            on_progress(fraction)
        parts.append(part)
        await asyncio.sleep(0)
    if on_progress:
        on_progress(1.0)
    return "".join(parts)


def build_metadata_document(meta: Mapping[str, Any], views: Optional[list[Any]] = None) -> MetadataDocument:
    """Assemble the metadata document from caller input.

    ``version`` is always the contract version and ``interfaces`` always
    includes the baseline tags, whatever the caller passed.
    """
    fields = {k: v for k, v in meta.items() if k not in ("version", "interfaces", "views")}
    return MetadataDocument(
        **fields,
        version=CONTRACT_VERSION,
        interfaces=uniq_interfaces(meta.get("interfaces")),
        views=views,
    )


def serialize_document(document: MetadataDocument) -> str:
    """Compact JSON of the document; unset fields are left out."""
    return json.dumps(
        document.model_dump(exclude_none=True),
        separators=(",", ":"),
        ensure_ascii=False,
    )


def build_metadata_map(body_hex: str) -> dict[str, str]:
    """Metadata big-map: storage pointer under the empty key, document under content."""
    return {
        "": "0x" + char2bytes(STORAGE_POINTER),
        CONTENT_KEY: "0x" + body_hex,
    }


def decode_metadata_hex(value: str) -> dict:
    """Decode a hex-encoded metadata document; malformed input gives {}."""
    try:
        raw = bytes.fromhex(value[2:] if value.startswith("0x") else value)
        decoded = json.loads(raw.decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        logger.debug(f"Could not decode metadata: {e}")
        return {}
    return decoded if isinstance(decoded, dict) else {}


STORAGE_TEMPLATE: dict[str, Any] = {
    "active_tokens": [],
    "admin": "",
    "burn_address": BURN_ADDRESS,
    "children": [],
    "collaborators": [],
    "contract_id": "0x" + char2bytes("ZeroContract"),
    "destroyed_tokens": [],
    "extrauri_counters": {},
    "ledger": {},
    "lock": False,
    "metadata": {},
    "next_token_id": 0,
    "operators": {},
    "parents": [],
    "token_metadata": {},
    "total_supply": {},
}


def build_initial_storage(admin: str, metadata_map: Mapping[str, str]) -> dict[str, Any]:
    """Fresh initial storage with the deployer as admin."""
    storage = copy.deepcopy(STORAGE_TEMPLATE)
    storage["admin"] = admin
    storage["metadata"] = dict(metadata_map)
    return storage
