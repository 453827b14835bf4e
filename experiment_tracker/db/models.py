from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Experiment(Base):
    __tablename__ = "experiments"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    researcher = Column(String, nullable=False)
    status = Column(String, nullable=False, default="planned")
    priority = Column(String, nullable=False, default="medium")
    description = Column(Text)
    hypothesis = Column(Text)
    methodology = Column(Text)
    notes = Column(Text)
    expected_duration = Column(String)
    duration_unit = Column(String, nullable=False, default="hours")
    start_date = Column(String)
    end_date = Column(String)
    # Matches resources.resource_id; deletes are restricted in the resource service.
    assigned_resource = Column(String)
    resource_utilization = Column(Integer)
    dataset_path = Column(String)
    model_config = Column(Text)
    hardware_requirements = Column(Text)
    dependencies = Column(Text)
    training_task = Column(String)
    training_batch_size = Column(String)
    episode_length = Column(String)
    learning_rate = Column(String)
    steps_trained_for = Column(String)
    epochs_trained_for = Column(String)
    episodes_in_dataset = Column(String)
    task_hours_in_dataset = Column(String)
    frames_in_dataset = Column(String)
    scoring = Column(String)
    enable_monitoring = Column(Boolean, nullable=False, default=True)
    auto_backup = Column(Boolean, nullable=False, default=True)
    notify_on_completion = Column(Boolean, nullable=False, default=True)
    tags_json = Column(Text)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)

    __table_args__ = (
        Index("idx_experiments_status", "status"),
        Index("idx_experiments_resource", "assigned_resource"),
        Index("idx_experiments_researcher", "researcher"),
        Index("idx_experiments_start", "start_date"),
    )


class ExperimentLog(Base):
    __tablename__ = "experiment_logs"

    id = Column(String, primary_key=True)
    experiment_id = Column(String, ForeignKey("experiments.id", ondelete="CASCADE"), nullable=False)
    level = Column(String, nullable=False, default="info")
    message = Column(Text, nullable=False)
    metadata_json = Column(Text)
    timestamp = Column(String, nullable=False)

    __table_args__ = (
        Index("idx_logs_experiment", "experiment_id"),
        Index("idx_logs_level", "level"),
    )


class Resource(Base):
    __tablename__ = "resources"

    id = Column(String, primary_key=True)
    resource_id = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    total_units = Column(String, nullable=False)
    description = Column(Text)
    status = Column(String, nullable=False, default="active")
    current_usage = Column(Integer, nullable=False, default=0)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class Researcher(Base):
    __tablename__ = "researchers"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    email = Column(String)
    department = Column(String)
    created_at = Column(String, nullable=False)


class Tag(Base):
    __tablename__ = "tags"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    category = Column(String, nullable=False)
    is_custom = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False)


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String)
    email = Column(String, unique=True)
    github_username = Column(String, unique=True)
    is_authorized = Column(Boolean, nullable=False, default=False)
    created_at = Column(String, nullable=False)
    last_sign_in_at = Column(String)
