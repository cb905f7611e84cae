"""FHIR JSON Bundle Writer.

Implements BundleWriterPort by writing one pretty-printed JSON file per
bundle into an output directory.
"""

import json
import logging
from pathlib import Path

from src.domain.ports import BundleWriterPort

logger = logging.getLogger(__name__)


class JSONBundleWriter(BundleWriterPort):
    """Writes ``<name>.json`` files.

    Parameters:
        output_dir: Target directory (created on first write)
        indent: JSON indentation
    """

    def __init__(self, output_dir: str, indent: int = 2):
        self.output_dir = Path(output_dir)
        self.indent = indent

    def write(self, bundle: dict, name: str) -> str:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{name}.json"
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(bundle, f, indent=self.indent, ensure_ascii=False)
            f.write("\n")
        logger.info(f"Wrote {len(bundle.get('entry', []))} entries to {path}")
        return str(path)
