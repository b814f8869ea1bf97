"""JSON file helpers shared by the source and state stores."""

import json
import shutil
from pathlib import Path
from typing import Any


def read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_json_atomic(path: Path, data: Any) -> None:
    """
    Write ``data`` as indented JSON through a temporary sibling file.

    Symlinks are followed so the link survives and its target is updated,
    and the existing file's permission bits carry over to the new file.
    Key order is preserved; the tools owning these files keep their own
    layout and we should not reshuffle it.
    """
    target = Path(path).resolve()
    target.parent.mkdir(parents=True, exist_ok=True)
    temp_path = target.with_name(f"{target.name}.tmp")
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        if target.exists():
            shutil.copymode(target, temp_path)
        temp_path.replace(target)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
