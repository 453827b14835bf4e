from __future__ import annotations

from datetime import date
import sqlite3
from typing import Any

from experiment_tracker.core.errors import DuplicateError
from experiment_tracker.core.logger import get_logger
from experiment_tracker.core.serialization import (
    decode_metadata,
    decode_tags,
    encode_metadata,
    encode_tags,
    tag_match_pattern,
)
from experiment_tracker.db.database import get_connection, new_id, utc_now_iso

logger = get_logger(__name__)

# column -> wire name
EXPERIMENT_COLUMNS: dict[str, str] = {
    "name": "name",
    "researcher": "researcher",
    "status": "status",
    "priority": "priority",
    "description": "description",
    "hypothesis": "hypothesis",
    "methodology": "methodology",
    "notes": "notes",
    "expected_duration": "expectedDuration",
    "duration_unit": "durationUnit",
    "start_date": "startDate",
    "end_date": "endDate",
    "assigned_resource": "assignedResource",
    "resource_utilization": "resourceUtilization",
    "dataset_path": "datasetPath",
    "model_config": "modelConfig",
    "hardware_requirements": "hardwareRequirements",
    "dependencies": "dependencies",
    "training_task": "trainingTask",
    "training_batch_size": "trainingBatchSize",
    "episode_length": "episodeLength",
    "learning_rate": "learningRate",
    "steps_trained_for": "stepsTrainedFor",
    "epochs_trained_for": "epochsTrainedFor",
    "episodes_in_dataset": "episodesInDataset",
    "task_hours_in_dataset": "taskHoursInDataset",
    "frames_in_dataset": "framesInDataset",
    "scoring": "scoring",
    "enable_monitoring": "enableMonitoring",
    "auto_backup": "autoBackup",
    "notify_on_completion": "notifyOnCompletion",
}
_BOOLEAN_COLUMNS = {"enable_monitoring", "auto_backup", "notify_on_completion"}

EXPERIMENT_SORT_COLUMNS: dict[str, str] = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "name": "name",
    "status": "status",
    "researcher": "researcher",
    "priority": "priority",
    "startDate": "start_date",
    "endDate": "end_date",
    "assignedResource": "assigned_resource",
}

RESEARCHER_SORT_COLUMNS: dict[str, str] = {
    "name": "name",
    "email": "email",
    "department": "department",
    "createdAt": "created_at",
}


def _order(direction: str) -> str:
    return "ASC" if str(direction).lower() == "asc" else "DESC"


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _storage_value(column: str, value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if column in _BOOLEAN_COLUMNS and value is not None:
        return int(bool(value))
    if hasattr(value, "value"):
        return value.value
    return value


def _experiment_columns(values: dict[str, Any]) -> dict[str, Any]:
    """Translate service-level field values into storage columns."""
    columns: dict[str, Any] = {}
    for key, value in values.items():
        if key == "tags":
            columns["tags_json"] = encode_tags(value)
        elif key in EXPERIMENT_COLUMNS:
            columns[key] = _storage_value(key, value)
    return columns


def _experiment_from_row(row: sqlite3.Row) -> dict[str, Any]:
    data: dict[str, Any] = {"id": row["id"]}
    for column, wire in EXPERIMENT_COLUMNS.items():
        value = row[column]
        if column in _BOOLEAN_COLUMNS:
            value = bool(value)
        data[wire] = value
    data["tags"] = decode_tags(row["tags_json"])
    data["createdAt"] = row["created_at"]
    data["updatedAt"] = row["updated_at"]
    return data


def _log_from_row(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "experimentId": row["experiment_id"],
        "level": row["level"],
        "message": row["message"],
        "metadata": decode_metadata(row["metadata_json"]),
        "timestamp": row["timestamp"],
    }


def _resource_from_row(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "resourceId": row["resource_id"],
        "name": row["name"],
        "type": row["type"],
        "totalUnits": row["total_units"],
        "description": row["description"],
        "status": row["status"],
        "currentUsage": int(row["current_usage"] or 0),
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


def _researcher_from_row(row: sqlite3.Row) -> dict[str, Any]:
    data = {
        "id": row["id"],
        "name": row["name"],
        "email": row["email"],
        "department": row["department"],
        "createdAt": row["created_at"],
    }
    keys = row.keys()
    if "total_experiments" in keys:
        data["totalExperiments"] = int(row["total_experiments"] or 0)
        data["activeExperiments"] = int(row["active_experiments"] or 0)
    return data


def _user_from_row(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "name": row["name"],
        "email": row["email"],
        "githubUsername": row["github_username"],
        "isAuthorized": bool(row["is_authorized"]),
        "createdAt": row["created_at"],
        "lastSignInAt": row["last_sign_in_at"],
    }


def _tag_from_row(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "name": row["name"],
        "category": row["category"],
        "isCustom": bool(row["is_custom"]),
        "createdAt": row["created_at"],
    }


class ExperimentRepository:
    @staticmethod
    async def create(values: dict[str, Any]) -> dict[str, Any]:
        experiment_id = new_id("exp")
        now = utc_now_iso()
        columns = _experiment_columns(values)
        columns.update({"id": experiment_id, "created_at": now, "updated_at": now})
        names = ", ".join(columns)
        placeholders = ", ".join("?" for _ in columns)
        conn = get_connection()
        try:
            conn.execute(f"INSERT INTO experiments ({names}) VALUES ({placeholders})", list(columns.values()))
            conn.commit()
            row = conn.execute("SELECT * FROM experiments WHERE id=?", (experiment_id,)).fetchone()
            logger.info(
                "db.experiment.create",
                experiment_id=experiment_id,
                status=row["status"],
                assigned_resource=row["assigned_resource"],
            )
            return _experiment_from_row(row)
        finally:
            conn.close()

    @staticmethod
    async def get(experiment_id: str) -> dict[str, Any] | None:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM experiments WHERE id=?", (experiment_id,)).fetchone()
            return _experiment_from_row(row) if row else None
        finally:
            conn.close()

    @staticmethod
    async def update(experiment_id: str, values: dict[str, Any]) -> dict[str, Any] | None:
        columns = _experiment_columns(values)
        columns["updated_at"] = utc_now_iso()
        assignments = ", ".join(f"{name}=?" for name in columns)
        conn = get_connection()
        try:
            cursor = conn.execute(
                f"UPDATE experiments SET {assignments} WHERE id=?",
                [*columns.values(), experiment_id],
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
            row = conn.execute("SELECT * FROM experiments WHERE id=?", (experiment_id,)).fetchone()
            logger.info("db.experiment.update", experiment_id=experiment_id, fields=sorted(columns))
            return _experiment_from_row(row)
        finally:
            conn.close()

    @staticmethod
    async def delete(experiment_id: str) -> bool:
        conn = get_connection()
        try:
            cursor = conn.execute("DELETE FROM experiments WHERE id=?", (experiment_id,))
            conn.commit()
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info("db.experiment.delete", experiment_id=experiment_id)
            return deleted
        finally:
            conn.close()

    @staticmethod
    async def list(
        search: str | None = None,
        status: str | None = None,
        resource: str | None = None,
        researcher: str | None = None,
        tags: list[str] | None = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        filters = []
        params: list[Any] = []
        if search:
            filters.append(
                "(name LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\' "
                "OR id LIKE ? ESCAPE '\\' OR researcher LIKE ? ESCAPE '\\')"
            )
            params.extend([_like(search)] * 4)
        if status:
            filters.append("status=?")
            params.append(status)
        if resource:
            filters.append("assigned_resource=?")
            params.append(resource)
        if researcher:
            filters.append("researcher=?")
            params.append(researcher)
        for tag in tags or []:
            filters.append("tags_json LIKE ? ESCAPE '\\'")
            params.append(tag_match_pattern(tag))
        where = f"WHERE {' AND '.join(filters)}" if filters else ""
        column = EXPERIMENT_SORT_COLUMNS.get(sort_by, "created_at")
        direction = _order(sort_order)

        conn = get_connection()
        try:
            total = conn.execute(f"SELECT COUNT(*) AS c FROM experiments {where}", params).fetchone()["c"]
            rows = conn.execute(
                f"""
                SELECT * FROM experiments
                {where}
                ORDER BY {column} {direction}, rowid {direction}
                LIMIT ? OFFSET ?
                """,
                [*params, limit, offset],
            ).fetchall()
            return [_experiment_from_row(row) for row in rows], int(total)
        finally:
            conn.close()

    @staticmethod
    async def list_scheduled(resource: str | None = None, tags: list[str] | None = None) -> list[dict[str, Any]]:
        filters = ["(start_date IS NOT NULL OR end_date IS NOT NULL)"]
        params: list[Any] = []
        if resource:
            filters.append("assigned_resource=?")
            params.append(resource)
        for tag in tags or []:
            filters.append("tags_json LIKE ? ESCAPE '\\'")
            params.append(tag_match_pattern(tag))
        conn = get_connection()
        try:
            rows = conn.execute(
                f"""
                SELECT * FROM experiments
                WHERE {' AND '.join(filters)}
                ORDER BY start_date ASC, created_at ASC
                """,
                params,
            ).fetchall()
            return [_experiment_from_row(row) for row in rows]
        finally:
            conn.close()

    @staticmethod
    async def list_active(statuses: tuple[str, ...]) -> list[dict[str, Any]]:
        placeholders = ", ".join("?" for _ in statuses)
        conn = get_connection()
        try:
            rows = conn.execute(
                f"""
                SELECT * FROM experiments
                WHERE assigned_resource IS NOT NULL
                  AND start_date IS NOT NULL
                  AND status IN ({placeholders})
                """,
                list(statuses),
            ).fetchall()
            return [_experiment_from_row(row) for row in rows]
        finally:
            conn.close()

    @staticmethod
    async def count(
        researcher: str | None = None,
        resource: str | None = None,
        statuses: tuple[str, ...] | None = None,
        updated_since: str | None = None,
    ) -> int:
        filters = []
        params: list[Any] = []
        if researcher is not None:
            filters.append("researcher=?")
            params.append(researcher)
        if resource is not None:
            filters.append("assigned_resource=?")
            params.append(resource)
        if statuses:
            filters.append(f"status IN ({', '.join('?' for _ in statuses)})")
            params.extend(statuses)
        if updated_since is not None:
            filters.append("updated_at >= ?")
            params.append(updated_since)
        where = f"WHERE {' AND '.join(filters)}" if filters else ""
        conn = get_connection()
        try:
            return int(conn.execute(f"SELECT COUNT(*) AS c FROM experiments {where}", params).fetchone()["c"])
        finally:
            conn.close()



class ExperimentLogRepository:
    @staticmethod
    async def add(
        experiment_id: str,
        message: str,
        level: str = "info",
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        log_id = new_id("log")
        conn = get_connection()
        try:
            conn.execute(
                """
                INSERT INTO experiment_logs (id, experiment_id, level, message, metadata_json, timestamp)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (log_id, experiment_id, level, message, encode_metadata(metadata), utc_now_iso()),
            )
            conn.commit()
            row = conn.execute("SELECT * FROM experiment_logs WHERE id=?", (log_id,)).fetchone()
            logger.info("db.log.add", experiment_id=experiment_id, log_level=level, log_id=log_id)
            return _log_from_row(row)
        finally:
            conn.close()

    @staticmethod
    async def latest(experiment_id: str, limit: int) -> list[dict[str, Any]]:
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT * FROM experiment_logs
                WHERE experiment_id=?
                ORDER BY timestamp DESC, rowid DESC
                LIMIT ?
                """,
                (experiment_id, limit),
            ).fetchall()
            return [_log_from_row(row) for row in rows]
        finally:
            conn.close()

    @staticmethod
    async def search(
        experiment_id: str | None = None,
        level: str | None = None,
        search: str | None = None,
        sort_order: str = "desc",
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int, dict[str, int]]:
        filters = []
        params: list[Any] = []
        if experiment_id:
            filters.append("l.experiment_id=?")
            params.append(experiment_id)
        if level:
            filters.append("l.level=?")
            params.append(level)
        if search:
            filters.append("l.message LIKE ? ESCAPE '\\'")
            params.append(_like(search))
        where = f"WHERE {' AND '.join(filters)}" if filters else ""
        direction = _order(sort_order)

        conn = get_connection()
        try:
            total = conn.execute(f"SELECT COUNT(*) AS c FROM experiment_logs l {where}", params).fetchone()["c"]
            rows = conn.execute(
                f"""
                SELECT l.*, e.name AS experiment_name, e.researcher AS experiment_researcher,
                       e.status AS experiment_status
                FROM experiment_logs l
                JOIN experiments e ON e.id = l.experiment_id
                {where}
                ORDER BY l.timestamp {direction}, l.rowid {direction}
                LIMIT ? OFFSET ?
                """,
                [*params, limit, offset],
            ).fetchall()
            counts = conn.execute(
                f"SELECT l.level AS level, COUNT(*) AS c FROM experiment_logs l {where} GROUP BY l.level",
                params,
            ).fetchall()
        finally:
            conn.close()

        logs = []
        for row in rows:
            item = _log_from_row(row)
            item["experiment"] = {
                "id": row["experiment_id"],
                "name": row["experiment_name"],
                "researcher": row["experiment_researcher"],
                "status": row["experiment_status"],
            }
            logs.append(item)
        return logs, int(total), {row["level"]: int(row["c"]) for row in counts}


class ResourceRepository:
    @staticmethod
    async def create(
        resource_id: str,
        name: str,
        type: str,
        total_units: str,
        status: str = "active",
        description: str | None = None,
        current_usage: int = 0,
    ) -> dict[str, Any]:
        row_id = new_id("res")
        now = utc_now_iso()
        conn = get_connection()
        try:
            conn.execute(
                """
                INSERT INTO resources (id, resource_id, name, type, total_units, description, status,
                                       current_usage, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (row_id, resource_id, name, type, total_units, description, status, current_usage, now, now),
            )
            conn.commit()
            row = conn.execute("SELECT * FROM resources WHERE id=?", (row_id,)).fetchone()
            logger.info("db.resource.create", id=row_id, resource_id=resource_id)
            return _resource_from_row(row)
        finally:
            conn.close()

    @staticmethod
    async def get(row_id: str) -> dict[str, Any] | None:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM resources WHERE id=?", (row_id,)).fetchone()
            return _resource_from_row(row) if row else None
        finally:
            conn.close()

    @staticmethod
    async def get_by_resource_id(resource_id: str) -> dict[str, Any] | None:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM resources WHERE resource_id=?", (resource_id,)).fetchone()
            return _resource_from_row(row) if row else None
        finally:
            conn.close()

    @staticmethod
    async def list() -> list[dict[str, Any]]:
        conn = get_connection()
        try:
            rows = conn.execute("SELECT * FROM resources ORDER BY type ASC, name ASC").fetchall()
            return [_resource_from_row(row) for row in rows]
        finally:
            conn.close()

    @staticmethod
    async def update(row_id: str, values: dict[str, Any]) -> dict[str, Any] | None:
        columns = {key: (value.value if hasattr(value, "value") else value) for key, value in values.items()}
        now = utc_now_iso()
        columns["updated_at"] = now
        assignments = ", ".join(f"{name}=?" for name in columns)
        conn = get_connection()
        try:
            current = conn.execute("SELECT resource_id FROM resources WHERE id=?", (row_id,)).fetchone()
            if current is None:
                return None
            conn.execute(f"UPDATE resources SET {assignments} WHERE id=?", [*columns.values(), row_id])
            moved = 0
            new_key = columns.get("resource_id")
            if new_key and new_key != current["resource_id"]:
                # Experiments hold the resource key, so they move in the same transaction.
                moved = conn.execute(
                    "UPDATE experiments SET assigned_resource=?, updated_at=? WHERE assigned_resource=?",
                    (new_key, now, current["resource_id"]),
                ).rowcount
            conn.commit()
            row = conn.execute("SELECT * FROM resources WHERE id=?", (row_id,)).fetchone()
            logger.info("db.resource.update", id=row_id, fields=sorted(columns), experiments_moved=moved)
            return _resource_from_row(row)
        finally:
            conn.close()

    @staticmethod
    async def delete(row_id: str) -> bool:
        conn = get_connection()
        try:
            cursor = conn.execute("DELETE FROM resources WHERE id=?", (row_id,))
            conn.commit()
            if cursor.rowcount:
                logger.info("db.resource.delete", id=row_id)
            return cursor.rowcount > 0
        finally:
            conn.close()


class ResearcherRepository:
    @staticmethod
    async def create(name: str, email: str | None = None, department: str | None = None) -> dict[str, Any]:
        row_id = new_id("rsr")
        conn = get_connection()
        try:
            conn.execute(
                "INSERT INTO researchers (id, name, email, department, created_at) VALUES (?, ?, ?, ?, ?)",
                (row_id, name, email, department, utc_now_iso()),
            )
            conn.commit()
            row = conn.execute("SELECT * FROM researchers WHERE id=?", (row_id,)).fetchone()
            logger.info("db.researcher.create", id=row_id)
            return _researcher_from_row(row)
        finally:
            conn.close()

    @staticmethod
    async def get(row_id: str) -> dict[str, Any] | None:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM researchers WHERE id=?", (row_id,)).fetchone()
            return _researcher_from_row(row) if row else None
        finally:
            conn.close()

    @staticmethod
    async def get_by_name(name: str) -> dict[str, Any] | None:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM researchers WHERE name=?", (name,)).fetchone()
            return _researcher_from_row(row) if row else None
        finally:
            conn.close()

    @staticmethod
    async def list(
        search: str | None = None,
        sort_by: str = "name",
        sort_order: str = "asc",
        active_statuses: tuple[str, ...] = (),
    ) -> list[dict[str, Any]]:
        params: list[Any] = []
        active_clause = "0"
        if active_statuses:
            active_clause = f"e.status IN ({', '.join('?' for _ in active_statuses)})"
            params.extend(active_statuses)
        where = ""
        if search:
            where = "WHERE r.name LIKE ? ESCAPE '\\'"
            params.append(_like(search))
        column = RESEARCHER_SORT_COLUMNS.get(sort_by, "name")
        conn = get_connection()
        try:
            rows = conn.execute(
                f"""
                SELECT r.*, COUNT(e.id) AS total_experiments,
                       COALESCE(SUM(CASE WHEN {active_clause} THEN 1 ELSE 0 END), 0) AS active_experiments
                FROM researchers r
                LEFT JOIN experiments e ON e.researcher = r.name
                {where}
                GROUP BY r.id
                ORDER BY r.{column} {_order(sort_order)}
                """,
                params,
            ).fetchall()
            return [_researcher_from_row(row) for row in rows]
        finally:
            conn.close()

    @staticmethod
    async def update(row_id: str, values: dict[str, Any]) -> dict[str, Any] | None:
        assignments = ", ".join(f"{name}=?" for name in values)
        conn = get_connection()
        try:
            current = conn.execute("SELECT name FROM researchers WHERE id=?", (row_id,)).fetchone()
            if current is None:
                return None
            conn.execute(f"UPDATE researchers SET {assignments} WHERE id=?", [*values.values(), row_id])
            moved = 0
            new_name = values.get("name")
            if new_name and new_name != current["name"]:
                moved = conn.execute(
                    "UPDATE experiments SET researcher=?, updated_at=? WHERE researcher=?",
                    (new_name, utc_now_iso(), current["name"]),
                ).rowcount
            conn.commit()
            row = conn.execute("SELECT * FROM researchers WHERE id=?", (row_id,)).fetchone()
            logger.info("db.researcher.update", id=row_id, fields=sorted(values), experiments_moved=moved)
            return _researcher_from_row(row)
        finally:
            conn.close()

    @staticmethod
    async def delete(row_id: str) -> bool:
        conn = get_connection()
        try:
            cursor = conn.execute("DELETE FROM researchers WHERE id=?", (row_id,))
            conn.commit()
            if cursor.rowcount:
                logger.info("db.researcher.delete", id=row_id)
            return cursor.rowcount > 0
        finally:
            conn.close()


class TagRepository:
    @staticmethod
    async def create(name: str, category: str, is_custom: bool = True) -> dict[str, Any]:
        row_id = new_id("tag")
        conn = get_connection()
        try:
            conn.execute(
                "INSERT INTO tags (id, name, category, is_custom, created_at) VALUES (?, ?, ?, ?, ?)",
                (row_id, name, category, int(is_custom), utc_now_iso()),
            )
            conn.commit()
            row = conn.execute("SELECT * FROM tags WHERE id=?", (row_id,)).fetchone()
            logger.info("db.tag.create", id=row_id, name=name, category=category)
            return _tag_from_row(row)
        finally:
            conn.close()

    @staticmethod
    async def get_by_name(name: str) -> dict[str, Any] | None:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM tags WHERE name=?", (name,)).fetchone()
            return _tag_from_row(row) if row else None
        finally:
            conn.close()

    @staticmethod
    async def list(category: str | None = None) -> list[dict[str, Any]]:
        conn = get_connection()
        try:
            if category:
                rows = conn.execute("SELECT * FROM tags WHERE category=? ORDER BY name ASC", (category,)).fetchall()
            else:
                rows = conn.execute("SELECT * FROM tags ORDER BY category ASC, name ASC").fetchall()
            return [_tag_from_row(row) for row in rows]
        finally:
            conn.close()


class UserRepository:
    @staticmethod
    async def list() -> list[dict[str, Any]]:
        conn = get_connection()
        try:
            rows = conn.execute("SELECT * FROM users ORDER BY created_at DESC, rowid DESC").fetchall()
            return [_user_from_row(row) for row in rows]
        finally:
            conn.close()

    @staticmethod
    async def get(user_id: str) -> dict[str, Any] | None:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM users WHERE id=?", (user_id,)).fetchone()
            return _user_from_row(row) if row else None
        finally:
            conn.close()

    @staticmethod
    async def find(github_username: str | None = None, email: str | None = None) -> dict[str, Any] | None:
        if github_username:
            query, value = "SELECT * FROM users WHERE lower(github_username)=lower(?)", github_username
        elif email:
            query, value = "SELECT * FROM users WHERE lower(email)=lower(?)", email
        else:
            return None
        conn = get_connection()
        try:
            row = conn.execute(query, (value,)).fetchone()
            return _user_from_row(row) if row else None
        finally:
            conn.close()

    @staticmethod
    async def upsert_authorization(
        github_username: str | None,
        email: str | None,
        is_authorized: bool,
    ) -> dict[str, Any]:
        by_login = await UserRepository.find(github_username=github_username) if github_username else None
        by_email = await UserRepository.find(email=email) if email else None
        if by_login and by_email and by_login["id"] != by_email["id"]:
            raise DuplicateError(
                "githubUsername and email belong to different users",
                code="USER_CONFLICT",
                details={"githubUsername": github_username, "email": email},
            )
        existing = by_login or by_email
        conn = get_connection()
        try:
            if existing:
                user_id = existing["id"]
                # Fill whichever identifier the row is still missing.
                conn.execute(
                    """
                    UPDATE users
                    SET is_authorized=?, github_username=COALESCE(github_username, ?), email=COALESCE(email, ?)
                    WHERE id=?
                    """,
                    (int(is_authorized), github_username, email, user_id),
                )
            else:
                user_id = new_id("usr")
                conn.execute(
                    """
                    INSERT INTO users (id, github_username, email, is_authorized, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (user_id, github_username, email, int(is_authorized), utc_now_iso()),
                )
            conn.commit()
            row = conn.execute("SELECT * FROM users WHERE id=?", (user_id,)).fetchone()
            logger.info("db.user.authorization", user_id=user_id, is_authorized=is_authorized, created=not existing)
            return _user_from_row(row)
        finally:
            conn.close()

    @staticmethod
    async def record_sign_in(user_id: str, name: str | None = None, email: str | None = None) -> dict[str, Any] | None:
        conn = get_connection()
        try:
            conn.execute(
                "UPDATE users SET last_sign_in_at=?, name=COALESCE(?, name) WHERE id=?",
                (utc_now_iso(), name, user_id),
            )
            if email:
                cursor = conn.execute(
                    """
                    UPDATE users SET email=?
                    WHERE id=? AND email IS NULL
                      AND NOT EXISTS (SELECT 1 FROM users WHERE lower(email)=lower(?) AND id<>?)
                    """,
                    (email, user_id, email, user_id),
                )
                if cursor.rowcount == 0:
                    logger.info("db.user.email_kept", user_id=user_id)
            conn.commit()
            row = conn.execute("SELECT * FROM users WHERE id=?", (user_id,)).fetchone()
            return _user_from_row(row) if row else None
        finally:
            conn.close()
