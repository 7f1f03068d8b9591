import base64
import binascii
import logging
from pathlib import Path
from typing import Union

import filetype

from calc_agent.errors import FormatError
from calc_agent.schemas.calculations import Artifact

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
BINARY_CONTENT_TYPE = "application/octet-stream"

# Sniffing only looks at the head of the file
SNIFF_LEN = 512

# Bytes that never show up in text files (NUL and most C0 controls)
_BINARY_BYTES = set(range(0x00, 0x09)) | {0x0B} | set(range(0x0E, 0x1A)) | set(range(0x1C, 0x20))


def detect_content_type(data: bytes) -> str:
    """Guess a MIME type from the content itself, never from a file name."""
    head = data[:SNIFF_LEN]
    kind = filetype.guess(head)
    if kind is not None:
        return kind.mime
    if any(b in _BINARY_BYTES for b in head):
        return BINARY_CONTENT_TYPE
    try:
        head.decode("utf-8")
    except UnicodeDecodeError as e:
        # a multi-byte sequence cut at the sniff boundary is still text
        if e.start < len(head) - 3:
            return BINARY_CONTENT_TYPE
    return TEXT_CONTENT_TYPE


def encode_file(path: Union[str, Path]) -> Artifact:
    path = Path(path)
    data = path.read_bytes()
    content_type = detect_content_type(data)
    return Artifact(
        name=path.name,
        contentType=content_type,
        uri=DATA_URI_PREFIX + content_type + ";base64," + base64.b64encode(data).decode("ascii"),
    )


def decode_to_file(workdir: Union[str, Path], destination_name: str, artifact: Artifact) -> Path:
    if not artifact.uri.startswith(DATA_URI_PREFIX):
        raise FormatError("Not a data URI", {"name": artifact.name})
    _, sep, payload = artifact.uri.partition(",")
    if not sep:
        raise FormatError(f"Data URI of {artifact.name} has no payload", {"name": artifact.name})
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FormatError(f"Malformed base64 payload in {artifact.name}: {e}", {"name": artifact.name})

    target = Path(workdir) / f"{destination_name}.{artifact.extension}"
    logger.info("Writing input file %s", target)
    target.write_bytes(raw)
    return target
