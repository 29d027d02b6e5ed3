"""HTTP handlers for the /posts resource."""

import structlog
from fastapi import APIRouter, Depends, Request, Response, status

from blog_post_api.errors import PostNotFoundError, PostValidationError
from blog_post_api.metrics import posts_created_total, posts_deleted_total, posts_updated_total
from blog_post_api.models import PostCreate, PostResponse, PostUpdate
from blog_post_api.store import PostStore

log = structlog.get_logger()

router = APIRouter(prefix="/posts", tags=["posts"])


def get_store(request: Request) -> PostStore:
    return request.app.state.store


@router.get("", response_model=list[PostResponse])
async def list_posts(store: PostStore = Depends(get_store)) -> list[PostResponse]:
    return [post.serialize() for post in await store.find_all()]


@router.get("/{post_id}", response_model=PostResponse)
async def read_post(post_id: str, store: PostStore = Depends(get_store)) -> PostResponse:
    post = await store.find_by_id(post_id)
    if post is None:
        raise PostNotFoundError(post_id)
    return post.serialize()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PostResponse)
async def create_post(data: PostCreate, store: PostStore = Depends(get_store)) -> PostResponse:
    post = await store.insert_one(data)
    posts_created_total.add(1)
    await log.ainfo("post_created", post_id=post.id, title=post.title)
    return post.serialize()


@router.put("/{post_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def update_post(
    post_id: str, update: PostUpdate, store: PostStore = Depends(get_store)
) -> Response:
    if update.id != post_id:
        raise PostValidationError(
            f"Request path id ({post_id}) and request body id ({update.id}) must match"
        )
    if await store.update_by_id(post_id, update) is None:
        raise PostNotFoundError(post_id)
    posts_updated_total.add(1)
    await log.ainfo("post_updated", post_id=post_id, fields=sorted(update.changes()))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_post(
    post_id: str, request: Request, store: PostStore = Depends(get_store)
) -> Response:
    deleted = await store.delete_by_id(post_id)
    if not deleted and not request.app.state.settings.idempotent_delete:
        raise PostNotFoundError(post_id)
    if deleted:
        posts_deleted_total.add(1)
        await log.ainfo("post_deleted", post_id=post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
