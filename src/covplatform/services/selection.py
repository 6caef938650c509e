# src/covplatform/services/selection.py
from __future__ import annotations

"""
Helpers de selección sobre los resúmenes de proyecto del origen.

No hay estado de UI aquí: funciones puras para aplanar registros, listar
proyectos / países / organizaciones y filtrar, usadas por la CLI.
"""

from datetime import date
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from ..contracts.core import SampleEvent


def _with_records(summaries: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    return [p for p in summaries if p.get("records")]


def member_projects_only(summaries: Sequence[Mapping[str, Any]], me: Optional[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Sin info de membresía se devuelven todos."""
    if not me or not me.get("projects"):
        return list(summaries)
    ids = {p.get("id") for p in me["projects"]}
    return [s for s in summaries if s.get("project_id") in ids]


def flatten_records(summaries: Iterable[Mapping[str, Any]]) -> List[SampleEvent]:
    """Registros de todos los proyectos, con `project_id` y `project_tags` del proyecto."""
    out: List[SampleEvent] = []
    for project in summaries:
        for record in project.get("records") or []:
            data = dict(record)
            data["project_id"] = project.get("project_id", data.get("project_id"))
            data.setdefault("project_name", project.get("project_name") or "")
            data["project_tags"] = project.get("tags") or []
            out.append(SampleEvent.model_validate(data))
    return out


def extract_projects(summaries: Iterable[Mapping[str, Any]]) -> List[dict]:
    projects = [
        {
            "id": p.get("project_id"),
            "name": p.get("project_name") or "",
            "tags": list(p.get("tags") or []),
            "record_count": len(p["records"]),
        }
        for p in _with_records(summaries)
    ]
    return sorted(projects, key=lambda p: p["name"].lower())


def extract_countries(summaries: Iterable[Mapping[str, Any]]) -> List[str]:
    countries = {
        r["country_name"]
        for p in _with_records(summaries)
        for r in p["records"]
        if r.get("country_name")
    }
    return sorted(countries)


def extract_organizations(summaries: Iterable[Mapping[str, Any]]) -> List[str]:
    orgs = {
        t["name"]
        for p in _with_records(summaries)
        for t in (p.get("tags") or [])
        if t.get("name")
    }
    return sorted(orgs)


def filter_records(
    events: Iterable[SampleEvent],
    *,
    projects: Sequence[str] = (),
    countries: Sequence[str] = (),
    organizations: Sequence[str] = (),
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[SampleEvent]:
    """Filtros combinados con AND; orden por proyecto, sitio y fecha."""
    out: List[SampleEvent] = []
    for e in events:
        if projects and e.project_id not in projects:
            continue
        if start is not None and e.sample_date < start:
            continue
        if end is not None and e.sample_date > end:
            continue
        if countries and e.country_name not in countries:
            continue
        if organizations and not set(organizations) & set(e.organization_names()):
            continue
        out.append(e)
    return sorted(out, key=lambda e: (e.project_name.lower(), e.site_name.lower(), e.sample_date))


__all__ = [
    "member_projects_only",
    "flatten_records",
    "extract_projects",
    "extract_countries",
    "extract_organizations",
    "filter_records",
]
