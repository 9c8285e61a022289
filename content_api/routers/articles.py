from fastapi import APIRouter, Depends, Response

from content_api.dependencies import PaginationParams, get_article_service, get_current_user
from content_api.entities import Article, ArticlePage
from content_api.schemas import ArticleCreate, ArticleUpdate
from content_api.services.article_service import ArticleService

# Domain errors (ValidationError, NotFoundError, StoreError) are mapped to
# responses by the handlers registered in main.py.
router = APIRouter(
    prefix="/api/v1/articles",
    tags=["articles"],
    dependencies=[Depends(get_current_user)],
)

@router.get("", response_model=ArticlePage)
async def list_articles(
    pagination: PaginationParams = Depends(),
    service: ArticleService = Depends(get_article_service),
):
    return await service.list(pagination.limit, pagination.offset)

@router.get("/{article_id}", response_model=Article)
async def get_article(article_id: int, service: ArticleService = Depends(get_article_service)):
    return await service.get(article_id)

@router.post("", status_code=201, response_model=Article)
async def create_article(data: ArticleCreate, service: ArticleService = Depends(get_article_service)):
    return await service.create(data)

@router.put("/{article_id}", response_model=Article)
async def update_article(
    article_id: int,
    data: ArticleUpdate,
    service: ArticleService = Depends(get_article_service),
):
    return await service.update(article_id, data)

@router.delete("/{article_id}", status_code=204)
async def delete_article(article_id: int, service: ArticleService = Depends(get_article_service)):
    await service.delete(article_id)
    return Response(status_code=204)
