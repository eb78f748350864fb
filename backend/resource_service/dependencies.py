"""
FastAPI dependencies for listing endpoints.

Usage:
    from resource_service.dependencies import get_query_params

    @router.get("/authors")
    def list_authors(
        params: dict = Depends(get_query_params),
        db: Session = Depends(get_db),
    ):
        return AuthorService(db).build_basic_query(params).to_dict()
"""

from typing import Any

from fastapi import Query

from shared.config.constants import Limits


def get_query_params(
    filter_: str | None = Query(
        default=None,
        alias="filter",
        description="JSON object of filter operators, e.g. {\"equal\": {\"status\": \"active\"}}",
    ),
    sort: str | None = Query(
        default=None,
        description="Sort as field|asc or field|desc",
    ),
    limit: int = Query(
        default=Limits.DEFAULT_PAGE_SIZE,
        ge=1,
        le=Limits.MAX_PAGE_SIZE,
        description="Maximum number of items per page",
    ),
    page: int = Query(
        default=Limits.FIRST_PAGE,
        ge=1,
        description="Page number, starting at 1",
    ),
) -> dict[str, Any]:
    """
    Listing parameters as the mapping ResourceService.build_basic_query() reads.

    Absent parameters are left out so the service defaults apply.
    """
    params: dict[str, Any] = {"limit": limit, "page": page}
    if filter_:
        params["filter"] = filter_
    if sort:
        params["sort"] = sort
    return params
