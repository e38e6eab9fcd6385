"""
Dashboard Endpoint
"""

from fastapi import APIRouter, Depends

from ..dependencies import get_repos
from ..repositories import Repositories
from ..stats import dashboard_overview

router = APIRouter()


@router.get("/overview")
def overview(repos: Repositories = Depends(get_repos)):
    """Clients, projects and invoices aggregates in one call"""
    return dashboard_overview(repos, repos.clock.now())
