"""
Explicit parser state for one GIFTI decode session.

The SAX handler owns exactly one ``ParserState``; nothing is kept at module
level, so two documents can be decoded side by side by two handlers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..core.types import DataArray, Gifti, MetadataSink


class ParserMode(Enum):
    """Which kind of character data the handler is currently collecting."""
    IDLE = "idle"
    METADATA = "in-metadata"
    METADATA_NAME = "in-metadata-entry-name"
    METADATA_VALUE = "in-metadata-entry-value"
    TRANSFORM = "in-transform"
    DATA_SPACE = "in-transform-space-tag"
    TRANSFORMED_SPACE = "in-transform-target-space-tag"
    MATRIX = "in-transform-matrix-text"
    LABEL = "in-label"
    DATA = "in-data"


# Modes whose character data is collected into ``ParserState.text``
TEXT_MODES = (
    ParserMode.METADATA_NAME,
    ParserMode.METADATA_VALUE,
    ParserMode.DATA_SPACE,
    ParserMode.TRANSFORMED_SPACE,
    ParserMode.MATRIX,
    ParserMode.LABEL,
)


@dataclass
class PendingTransform:
    """A <CoordinateSystemTransformMatrix> under construction."""
    data_space: str = ""
    transformed_space: str = ""


@dataclass
class ParserState:
    """
    Mutable cursor state of a decode session.

    Attributes:
        mode: Current collection mode
        gifti: Container under construction (None until <GIFTI> opens)
        data_array: Enclosing <DataArray>, if any
        metadata_holder: Entity receiving the next committed <MetaData>
        metadata: Entries of the open <MetaData> block
        md_name / md_value: Name and value of the open <MD> entry
        transform: Open <CoordinateSystemTransformMatrix>
        label_attributes: Attributes of the open <Label>
        text: Character data collected for the current text mode
    """
    mode: ParserMode = ParserMode.IDLE
    gifti: Optional[Gifti] = None
    data_array: Optional[DataArray] = None
    metadata_holder: Optional[MetadataSink] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    md_name: Optional[str] = None
    md_value: Optional[str] = None
    transform: Optional[PendingTransform] = None
    label_attributes: Dict[str, str] = field(default_factory=dict)
    text: List[str] = field(default_factory=list)
    return_mode: ParserMode = ParserMode.IDLE

    def begin_text(self, mode: ParserMode) -> None:
        """Enter a text-collecting mode, remembering where to return."""
        self.return_mode = self.mode
        self.mode = mode
        self.text = []

    def end_text(self) -> str:
        """Leave the text mode and return the collected text, stripped."""
        collected = "".join(self.text).strip()
        self.text = []
        self.mode = self.return_mode
        self.return_mode = ParserMode.IDLE
        return collected
