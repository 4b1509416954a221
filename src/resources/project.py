"""Selection and naming of Keystone projects synced to namespaces."""

import logging
from collections.abc import Iterable
from typing import Any

from models import SyncConfig

logger = logging.getLogger(__name__)

PROJECTS_DATA_TYPE = "projects"


def projects_to_sync(config: SyncConfig, projects: Iterable[Any]) -> list[Any]:
    """Filter projects down to those that should get a namespace.

    Returns nothing if project syncing is disabled, and skips projects
    whose id is in the black list.
    """
    if not config.syncs(PROJECTS_DATA_TYPE):
        logger.debug("Project syncing disabled, skipping all projects")
        return []

    selected = []
    for project in projects:
        if config.is_blacklisted(project.id):
            logger.debug("Project %s is black listed, skipping", project.id)
            continue
        selected.append(project)
    return selected


def namespace_name_for_project(config: SyncConfig, project: Any) -> str:
    """Get the namespace name for a Keystone project."""
    return config.format_namespace_name(
        project.id, project.name or "", getattr(project, "domain_id", None) or ""
    )
