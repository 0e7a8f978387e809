"""
KEGG pathway identifiers
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

import pandas as pd

from ..exceptions import DataShapeError

logger = logging.getLogger(__name__)

_PATHWAY_ID = re.compile(r"^(?:path:)?([A-Za-z]+)(\d+)$")


@dataclass(frozen=True)
class PathwayReference:
    """A KEGG pathway id split into organism prefix and numeric code"""

    organism: str
    code: str

    @property
    def pathway_id(self) -> str:
        return f"{self.organism}{self.code}"

    def __str__(self) -> str:
        return self.pathway_id


def parse_pathway_id(text: str) -> PathwayReference:
    """
    Split an identifier such as ``hsa04110`` into ``hsa`` and ``04110``

    Raises:
        DataShapeError if the identifier is not letters followed by digits
    """
    match = _PATHWAY_ID.match(str(text).strip())
    if match is None:
        raise DataShapeError(
            f"Invalid pathway identifier '{text}': expected letters followed by digits",
            field="pathway_id",
        )
    return PathwayReference(organism=match.group(1), code=match.group(2))


def load_pathway_ids(path: Union[str, Path]) -> List[str]:
    """
    Read pathway identifiers from the first column of a tab-delimited file

    A header line is skipped when its first field is not a pathway id.
    Blank lines are ignored and order is preserved.
    """
    path = Path(path)
    try:
        df = pd.read_csv(path, sep="\t", header=None, dtype=str, comment="#")
    except pd.errors.EmptyDataError:
        df = pd.DataFrame()

    ids = [str(v).strip() for v in df.iloc[:, 0].dropna()] if not df.empty else []
    ids = [v for v in ids if v]
    if ids and not _PATHWAY_ID.match(ids[0]):
        logger.debug(f"Skipping header '{ids[0]}' in {path.name}")
        ids = ids[1:]

    if not ids:
        raise DataShapeError(f"No pathway identifiers in {path}", field="pathway_id")

    logger.info(f"Loaded {len(ids)} pathway identifiers from {path.name}")
    return ids
