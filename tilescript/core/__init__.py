"""Core module: step vocabulary, configs, tags and flow verification."""

from .steps import Step, StepKind, build
from .schemas import StepSchemaError, validate_step, validate_steps
from .scene import SceneSnapshot
from .tags import allocate_tag, allocate_trap_tag
from .flow import FlowError, FlowReport, ensure_valid, verify_program

__all__ = [
    "Step",
    "StepKind",
    "build",
    "StepSchemaError",
    "validate_step",
    "validate_steps",
    "SceneSnapshot",
    "allocate_tag",
    "allocate_trap_tag",
    "FlowError",
    "FlowReport",
    "ensure_valid",
    "verify_program",
]
