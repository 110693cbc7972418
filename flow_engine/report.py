"""CFD report assembly for every configured project."""

from __future__ import annotations

import logging

from flow_engine.cfd import build_cfd
from flow_engine.errors import MissingReferenceError
from flow_engine.schema import Dataset, ProjectReport, Report, ReportConfig
from flow_engine.timeline import reconstruct

logger = logging.getLogger(__name__)


def build_report(config: ReportConfig, dataset: Dataset) -> Report:
    """Rebuild timelines once, then aggregate each configured project in config order."""

    project_names = dataset.project_name_by_gid()
    for project in config.projects:
        if project.gid not in project_names:
            raise MissingReferenceError("project", project.gid, f"configured as '{project.label}'")

    streams = reconstruct(dataset)

    projects: list[ProjectReport] = []
    for project in config.projects:
        name = project_names[project.gid]
        logger.info("Processing: %s (%s)", project.label, name)
        snapshots, durations = build_cfd(streams.get(name, []), project)
        projects.append(
            ProjectReport(
                label=project.label,
                name=name,
                cfd_states=project.cfd_states,
                done_states=project.done_states,
                snapshots=snapshots,
                durations=durations,
            )
        )
    return Report(projects=projects)
