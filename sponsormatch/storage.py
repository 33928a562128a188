import json
from pathlib import Path
from typing import Any, Dict

from .logger import get_logger

logger = get_logger()


def load_directory(path: Path) -> Dict[str, Any]:
    """
    Read the sponsor directory document file.

    A missing or blank file is an empty directory. A file that is not valid
    JSON is logged and treated as empty. I/O errors propagate.
    """
    if not path.exists():
        return {"sponsors": []}
    with path.open("r", encoding="utf-8") as f:
        content = f.read().strip()
    if not content:
        return {"sponsors": []}
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.warning("Sponsor directory is not valid JSON", path=str(path), error=str(e))
        return {"sponsors": []}
    if not isinstance(data, dict):
        logger.warning("Sponsor directory root must be an object", path=str(path))
        return {"sponsors": []}
    data.setdefault("sponsors", [])
    return data

