from __future__ import annotations

from typing import Any

from experiment_tracker.core.constants import TAG_CATALOG, builtin_tag_names
from experiment_tracker.core.errors import DuplicateError
from experiment_tracker.db.repository import TagRepository
from experiment_tracker.schemas.request_schemas import CreateTagRequest


async def list_tags(category: str | None = None) -> dict[str, Any]:
    custom = await TagRepository.list(category=category)
    grouped: dict[str, list[dict[str, Any]]] = {}
    for name_category, names in TAG_CATALOG.items():
        if category and name_category != category:
            continue
        grouped[name_category] = [{"name": name, "category": name_category, "isCustom": False} for name in names]
    for tag in custom:
        grouped.setdefault(tag["category"], []).append(tag)
    return {
        "categories": grouped,
        "all": sorted({tag["name"] for tags in grouped.values() for tag in tags}),
        "customCount": len(custom),
    }


async def create_tag(request: CreateTagRequest) -> dict[str, Any]:
    name = request.name.strip().lower()
    if name in builtin_tag_names() or await TagRepository.get_by_name(name):
        raise DuplicateError("Tag already exists", code="TAG_EXISTS", details={"name": name})
    return await TagRepository.create(name, request.category.value)
