"""
Clients API Endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_repos, page_size
from ..models import ClientStatus
from ..repositories import Repositories, paginate
from ..schemas import ClientCreate, ClientUpdate
from ..stats import client_overview

router = APIRouter()


@router.get("")
def list_clients(
    search: str = "",
    status: Optional[ClientStatus] = None,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=500),
    repos: Repositories = Depends(get_repos),
    default_limit: int = Depends(page_size),
):
    """List clients, newest first"""
    clients = repos.clients.search(search, status)
    rows, pagination = paginate(clients, page, limit or default_limit, "totalClients")
    return {"clients": [c.to_record() for c in rows], "pagination": pagination}


@router.get("/stats/overview")
def clients_overview(repos: Repositories = Depends(get_repos)):
    return client_overview(repos.clients.all())


@router.get("/{client_id}")
def get_client(client_id: str, repos: Repositories = Depends(get_repos)):
    return {"client": repos.clients.get(client_id).to_record()}


@router.post("", status_code=201)
def create_client(body: ClientCreate, repos: Repositories = Depends(get_repos)):
    client = repos.clients.create(body)
    return {"message": "Client created successfully", "client": client.to_record()}


@router.put("/{client_id}")
def update_client(
    client_id: str, body: ClientUpdate, repos: Repositories = Depends(get_repos)
):
    client = repos.clients.update(client_id, body)
    return {"message": "Client updated successfully", "client": client.to_record()}


@router.delete("/{client_id}")
def delete_client(client_id: str, repos: Repositories = Depends(get_repos)):
    repos.clients.delete(client_id)
    return {"message": "Client deleted successfully"}


@router.post("/{client_id}/stats/refresh")
def refresh_client_stats(client_id: str, repos: Repositories = Depends(get_repos)):
    """Recompute totalProjects and totalRevenue from the projects collection"""
    repos.clients.get(client_id)
    client = repos.clients.update_stats(client_id, repos.projects.all())
    return {"message": "Client stats updated", "client": client.to_record()}
