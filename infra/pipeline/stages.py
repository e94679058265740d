"""
Workflow stage graph.

The stage order, optional flags and display metadata live in
STAGE_DEFINITIONS. Transition legality is computed from that table:

  - moving to any earlier stage is always allowed
  - moving to the next stage is allowed
  - when the next stage is optional, jumping over it is allowed
"""

from enum import Enum
from typing import Dict, List, Optional

from infra.errors import StageTransitionInvalid


class WorkflowStage(str, Enum):
    SETUP = "setup"
    IMPORTING = "importing"
    PREPROCESSING = "preprocessing"
    OCR = "ocr"
    EDITING = "editing"
    EXPORTING = "exporting"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @property
    def display_name(self) -> str:
        return _DEFINITIONS_BY_STAGE[self]['display_name']

    @property
    def description(self) -> str:
        return _DEFINITIONS_BY_STAGE[self]['description']

    @property
    def is_optional(self) -> bool:
        return _DEFINITIONS_BY_STAGE[self]['optional']


STAGE_DEFINITIONS = [
    {'stage': WorkflowStage.SETUP, 'display_name': 'Setup', 'optional': False,
     'description': 'Create a new project'},
    {'stage': WorkflowStage.IMPORTING, 'display_name': 'Import', 'optional': False,
     'description': 'Import PDF or images'},
    {'stage': WorkflowStage.PREPROCESSING, 'display_name': 'Preprocess', 'optional': True,
     'description': 'Enhance images for OCR (optional)'},
    {'stage': WorkflowStage.OCR, 'display_name': 'OCR', 'optional': False,
     'description': 'Extract text from images'},
    {'stage': WorkflowStage.EDITING, 'display_name': 'Edit', 'optional': False,
     'description': 'Review and edit transcription'},
    {'stage': WorkflowStage.EXPORTING, 'display_name': 'Export', 'optional': False,
     'description': 'Export final document'},
]


def _validate_definitions(definitions: List[dict]) -> None:
    stages = [d['stage'] for d in definitions]
    if len(set(stages)) != len(stages):
        raise ValueError("Stage definitions contain duplicates")
    if set(stages) != set(WorkflowStage):
        raise ValueError("Stage definitions must cover every WorkflowStage exactly once")
    if definitions[0]['optional'] or definitions[-1]['optional']:
        raise ValueError("Entry and terminal stages cannot be optional")
    for current, following in zip(definitions, definitions[1:]):
        if current['optional'] and following['optional']:
            raise ValueError(
                f"Consecutive optional stages are not supported: "
                f"{current['stage'].value} -> {following['stage'].value}"
            )


_validate_definitions(STAGE_DEFINITIONS)

STAGE_ORDER: List[WorkflowStage] = [d['stage'] for d in STAGE_DEFINITIONS]
STAGE_NAMES: List[str] = [s.value for s in STAGE_ORDER]
_RANKS: Dict[WorkflowStage, int] = {stage: i for i, stage in enumerate(STAGE_ORDER)}
_DEFINITIONS_BY_STAGE: Dict[WorkflowStage, dict] = {d['stage']: d for d in STAGE_DEFINITIONS}

ENTRY_STAGE = STAGE_ORDER[0]
TERMINAL_STAGE = STAGE_ORDER[-1]


def get_stage(name: str) -> WorkflowStage:
    """Look up a stage by value ("ocr") or display name ("OCR")."""
    for stage in STAGE_ORDER:
        if name == stage.value or name.lower() == stage.display_name.lower():
            return stage
    raise ValueError(f"Unknown stage: {name}. Available: {', '.join(STAGE_NAMES)}")


def next_stage(stage: WorkflowStage) -> Optional[WorkflowStage]:
    rank = stage.rank + 1
    return STAGE_ORDER[rank] if rank < len(STAGE_ORDER) else None


def previous_stage(stage: WorkflowStage) -> Optional[WorkflowStage]:
    rank = stage.rank - 1
    return STAGE_ORDER[rank] if rank >= 0 else None


def can_transition(current: WorkflowStage, target: WorkflowStage) -> bool:
    if target.rank < current.rank:
        return True

    following = next_stage(current)
    if following is None:
        return False
    if target == following:
        return True

    return following.is_optional and target == next_stage(following)


def require_transition(current: WorkflowStage, target: WorkflowStage) -> None:
    if not can_transition(current, target):
        raise StageTransitionInvalid(current, target)
