from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from experiment_tracker.core.constants import (
    DurationUnit,
    ExperimentStatus,
    LogLevel,
    Priority,
    ResourceStatus,
    TagCategory,
)


class CamelModel(BaseModel):
    """Accepts camelCase keys on the wire and snake_case from Python callers."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        protected_namespaces=(),
    )


def _check_date_order(start: date | None, end: date | None) -> None:
    if start is not None and end is not None and start > end:
        raise ValueError("endDate must be on or after startDate")


def _clean_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    cleaned: list[str] = []
    for tag in tags:
        value = tag.strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


class ExperimentFields(CamelModel):
    description: str | None = None
    hypothesis: str | None = None
    methodology: str | None = None
    notes: str | None = None
    expected_duration: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    assigned_resource: str | None = None
    resource_utilization: int | None = Field(default=None, ge=0, le=100)
    dataset_path: str | None = None
    model_settings: str | None = Field(default=None, alias="modelConfig")
    hardware_requirements: str | None = None
    dependencies: str | None = None
    training_task: str | None = None
    training_batch_size: str | None = None
    episode_length: str | None = None
    learning_rate: str | None = None
    steps_trained_for: str | None = None
    epochs_trained_for: str | None = None
    episodes_in_dataset: str | None = None
    task_hours_in_dataset: str | None = None
    frames_in_dataset: str | None = None
    scoring: str | None = None
    tags: list[str] | None = Field(default=None, max_length=50)

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: list[str] | None) -> list[str] | None:
        return _clean_tags(value)

    @field_validator("assigned_resource", "start_date", "end_date", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("resource_utilization", mode="before")
    @classmethod
    def _utilization_from_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            text = value.strip().rstrip("%").strip()
            return text or None
        return value

    def storage_values(self, exclude_unset: bool = False) -> dict[str, Any]:
        values = self.model_dump(exclude_unset=exclude_unset)
        if "model_settings" in values:
            values["model_config"] = values.pop("model_settings")
        return values


class CreateExperimentRequest(ExperimentFields):
    name: str = Field(min_length=1, max_length=200)
    researcher: str = Field(min_length=1, max_length=200)
    status: ExperimentStatus = ExperimentStatus.PLANNED
    priority: Priority = Priority.MEDIUM
    duration_unit: DurationUnit = DurationUnit.HOURS
    enable_monitoring: bool = True
    auto_backup: bool = True
    notify_on_completion: bool = True

    @model_validator(mode="after")
    def _dates_in_order(self) -> "CreateExperimentRequest":
        _check_date_order(self.start_date, self.end_date)
        return self


_NON_NULLABLE_UPDATE_FIELDS = (
    "name",
    "researcher",
    "status",
    "priority",
    "duration_unit",
    "enable_monitoring",
    "auto_backup",
    "notify_on_completion",
)


class UpdateExperimentRequest(ExperimentFields):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    researcher: str | None = Field(default=None, min_length=1, max_length=200)
    status: ExperimentStatus | None = None
    priority: Priority | None = None
    duration_unit: DurationUnit | None = None
    enable_monitoring: bool | None = None
    auto_backup: bool | None = None
    notify_on_completion: bool | None = None

    @model_validator(mode="after")
    def _required_fields_not_null(self) -> "UpdateExperimentRequest":
        nulled = [name for name in _NON_NULLABLE_UPDATE_FIELDS if name in self.model_fields_set and getattr(self, name) is None]
        if nulled:
            raise ValueError(f"fields cannot be null: {', '.join(sorted(to_camel(name) for name in nulled))}")
        _check_date_order(self.start_date, self.end_date)
        return self


class CreateLogRequest(CamelModel):
    message: str = Field(min_length=1, max_length=10000)
    level: LogLevel = LogLevel.INFO
    metadata: dict[str, Any] | None = None


class ConflictCheckRequest(CamelModel):
    start_date: date
    end_date: date
    assigned_resource: str = Field(min_length=1)
    resource_utilization: int | None = Field(default=None, ge=0, le=100)
    exclude_experiment_id: str | None = None

    @field_validator("resource_utilization", mode="before")
    @classmethod
    def _utilization_from_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            text = value.strip().rstrip("%").strip()
            return text or None
        return value

    @model_validator(mode="after")
    def _dates_in_order(self) -> "ConflictCheckRequest":
        _check_date_order(self.start_date, self.end_date)
        return self


class CreateResearcherRequest(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    email: str | None = Field(default=None, max_length=320)
    department: str | None = Field(default=None, max_length=200)


class UpdateResearcherRequest(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    email: str | None = Field(default=None, max_length=320)
    department: str | None = Field(default=None, max_length=200)

    @model_validator(mode="after")
    def _name_not_null(self) -> "UpdateResearcherRequest":
        if "name" in self.model_fields_set and self.name is None:
            raise ValueError("name cannot be null")
        return self


class CreateResourceRequest(CamelModel):
    resource_id: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=200)
    type: str = Field(min_length=1, max_length=100)
    total_units: str = Field(min_length=1, max_length=200)
    description: str | None = None
    status: ResourceStatus = ResourceStatus.ACTIVE


class UpdateResourceRequest(CamelModel):
    resource_id: str | None = Field(default=None, min_length=1, max_length=100)
    name: str | None = Field(default=None, min_length=1, max_length=200)
    type: str | None = Field(default=None, min_length=1, max_length=100)
    total_units: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    status: ResourceStatus | None = None
    current_usage: int | None = Field(default=None, ge=0, le=100)

    @model_validator(mode="after")
    def _required_fields_not_null(self) -> "UpdateResourceRequest":
        required = ("resource_id", "name", "type", "total_units", "status", "current_usage")
        nulled = [name for name in required if name in self.model_fields_set and getattr(self, name) is None]
        if nulled:
            raise ValueError(f"fields cannot be null: {', '.join(sorted(to_camel(name) for name in nulled))}")
        return self


class CreateTagRequest(CamelModel):
    name: str = Field(min_length=1, max_length=64)
    category: TagCategory


class AuthorizeUserRequest(CamelModel):
    github_username: str | None = Field(default=None, max_length=100)
    email: str | None = Field(default=None, max_length=320)
    authorize: bool = True

    @model_validator(mode="after")
    def _identity_present(self) -> "AuthorizeUserRequest":
        if not (self.github_username or self.email):
            raise ValueError("Either githubUsername or email is required")
        return self


class OAuthCallbackRequest(CamelModel):
    provider: str = Field(min_length=1, max_length=50)
    login: str = Field(min_length=1, max_length=100)
    email: str | None = Field(default=None, max_length=320)
    name: str | None = Field(default=None, max_length=200)
