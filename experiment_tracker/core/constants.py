from __future__ import annotations

from enum import Enum


class ExperimentStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"
    PAUSED = "paused"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DurationUnit(str, Enum):
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"


class LogLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class ResourceStatus(str, Enum):
    ACTIVE = "active"
    IDLE = "idle"
    MAINTENANCE = "maintenance"


class TagCategory(str, Enum):
    EXPERIMENT_TYPE = "experiment-type"
    HARDWARE_REQUIREMENTS = "hardware-requirements"
    RESEARCH_DOMAIN = "research-domain"
    SCALE = "scale"


# Experiments in these states hold their resource.
ACTIVE_STATUSES: tuple[str, ...] = (ExperimentStatus.IN_PROGRESS.value, ExperimentStatus.PLANNED.value)

TAG_CATALOG: dict[str, list[str]] = {
    TagCategory.EXPERIMENT_TYPE.value: [
        "computer-vision",
        "reinforcement-learning",
        "supervised-learning",
        "unsupervised-learning",
        "robotics",
        "simulation",
        "data-collection",
        "model-validation",
        "hyperparameter-tuning",
        "ablation-study",
    ],
    TagCategory.HARDWARE_REQUIREMENTS.value: [
        "gpu-intensive",
        "cpu-only",
        "robotic-hardware",
        "camera-required",
        "sensors",
        "high-memory",
        "distributed",
        "edge-computing",
        "cloud-compute",
    ],
    TagCategory.RESEARCH_DOMAIN.value: [
        "manipulation",
        "navigation",
        "perception",
        "planning",
        "control",
        "learning",
        "safety",
        "multi-agent",
        "human-robot-interaction",
        "nlp",
        "audio-processing",
    ],
    TagCategory.SCALE.value: [
        "small-scale",
        "medium-scale",
        "large-scale",
        "proof-of-concept",
        "production-ready",
        "pilot-study",
        "full-deployment",
    ],
}


def builtin_tag_names() -> set[str]:
    return {name for names in TAG_CATALOG.values() for name in names}
