import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Union

from calc_agent.errors import FormatError
from calc_agent.schemas.calculations import CalculationResponse
from calc_agent.services.artifact_codec import encode_file

logger = logging.getLogger(__name__)


def trim_and_split(text: str) -> List[str]:
    text = text.strip()
    if not text:
        return []
    lines = (line.rstrip("\r") for line in text.split("\n"))
    return [line for line in lines if line.strip()]


def scan_changed_files(workdir: Union[str, Path], since_ns: int) -> List[Path]:
    """Non-directory entries of workdir modified strictly after since_ns, in listing order."""
    logger.info("Looking for files that have changed since %s", since_ns)
    changed: List[Path] = []
    with os.scandir(workdir) as entries:
        for entry in entries:
            if entry.is_dir():
                continue
            mtime_ns = entry.stat().st_mtime_ns
            logger.debug("Checking file %s changed %s", entry.name, mtime_ns)
            if mtime_ns > since_ns:
                logger.info("Including file %s", entry.name)
                changed.append(Path(entry.path))
    return changed


def read_output_file(path: Path) -> Any:
    logger.info("Reading output file %s", path)
    if path.name.endswith(".json"):
        try:
            return json.loads(path.read_bytes())
        except ValueError as e:
            raise FormatError(f"Output {path.name} is not valid JSON: {e}", {"file": path.name})
    return encode_file(path).model_dump(by_alias=True)


def package_result(
    workdir: Union[str, Path], since_ns: int, stdout: str, stderr: str
) -> CalculationResponse:
    outputs: Dict[str, Any] = {}
    for path in scan_changed_files(workdir, since_ns):
        # keyed by name without extension, b.json -> "b"; the full name only on a clash
        key = path.stem if path.stem not in outputs else path.name
        outputs[key] = read_output_file(path)
    return CalculationResponse(
        outputs=outputs,
        logs=trim_and_split(stdout),
        errors=trim_and_split(stderr),
    )
