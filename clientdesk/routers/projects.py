"""
Projects API Endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_repos, page_size
from ..models import ProjectStatus
from ..repositories import Repositories, paginate
from ..schemas import ProjectCreate, ProjectUpdate
from ..stats import project_overview

router = APIRouter()


@router.get("")
def list_projects(
    search: str = "",
    status: Optional[ProjectStatus] = None,
    client_id: Optional[str] = Query(None, alias="clientId"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=500),
    repos: Repositories = Depends(get_repos),
    default_limit: int = Depends(page_size),
):
    """List projects with client names, newest first"""
    rows = repos.projects.search(search, status.value if status else None, client_id)
    rows, pagination = paginate(rows, page, limit or default_limit, "totalProjects")
    return {"projects": rows, "pagination": pagination}


@router.get("/stats/overview")
def projects_overview(repos: Repositories = Depends(get_repos)):
    return project_overview(repos.projects.all(), repos.clock.now())


@router.get("/{project_id}")
def get_project(project_id: str, repos: Repositories = Depends(get_repos)):
    project = repos.projects.get(project_id)
    client = repos.clients.find(project.client_id)
    return {"project": repos.projects.enrich(project, {client.id: client} if client else {})}


@router.post("", status_code=201)
def create_project(body: ProjectCreate, repos: Repositories = Depends(get_repos)):
    project = repos.projects.create(body)
    return {"message": "Project created successfully", "project": project.to_record()}


@router.put("/{project_id}")
def update_project(
    project_id: str, body: ProjectUpdate, repos: Repositories = Depends(get_repos)
):
    project = repos.projects.update(project_id, body)
    return {"message": "Project updated successfully", "project": project.to_record()}


@router.delete("/{project_id}")
def delete_project(project_id: str, repos: Repositories = Depends(get_repos)):
    repos.projects.delete(project_id)
    return {"message": "Project deleted successfully"}
