"""Destinations for finished composite documents."""
import json
from pathlib import Path
from typing import Any, Dict, Union


class JsonlSink:
    """Append one JSON document per line to a file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def write(self, document: Dict[str, Any]) -> None:
        """Append one line. Runs synchronously on the calling thread."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8", newline="\n") as f:
            f.write(json.dumps(document, ensure_ascii=False) + "\n")

    def reset(self) -> None:
        """Truncate the output file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("", encoding="utf-8")
