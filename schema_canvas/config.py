from dataclasses import dataclass


@dataclass(frozen=True)
class EditorConfig:
    debug: bool = False
    log_level: str = "INFO"
    max_undo: int = 50
    force_iterations: int = 120
    default_layout: str = "grid"
