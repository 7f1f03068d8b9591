import json
import logging
from pathlib import Path
from typing import List, Union

from calc_agent.errors import FormatError
from calc_agent.schemas.calculations import ArtifactInput, CalculationContext
from calc_agent.services.artifact_codec import decode_to_file

logger = logging.getLogger(__name__)


def materialize_inputs(workdir: Union[str, Path], context: CalculationContext) -> List[Path]:
    """
    Write every input of the context as a file in workdir.

    Artifacts become <name>.<ext> with the decoded bytes, any other value
    becomes <name>.json. Null inputs are skipped. The first failure aborts.
    """
    workdir = Path(workdir)
    written: List[Path] = []
    for name, value in context.inputs.items():
        if value is None:
            continue
        if isinstance(value, ArtifactInput):
            written.append(decode_to_file(workdir, name, value.artifact))
            continue
        try:
            raw = json.dumps(value.value, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise FormatError(f"Input {name} is not serializable as JSON: {e}", {"input": name})
        target = workdir / f"{name}.json"
        logger.info("Writing input file %s", target)
        target.write_text(raw, encoding="utf-8")
        written.append(target)
    return written
