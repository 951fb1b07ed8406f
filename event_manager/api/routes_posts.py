"""
Post and comment API routes
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from event_manager.core.config import settings
from event_manager.core.db import get_db
from event_manager.core.exceptions import NotFoundError
from event_manager.models import Comment, Post, User
from event_manager.schemas.common import PaginationParams, RequestMetadata
from event_manager.schemas.post import (
    CommentCreate,
    CommentResponse,
    CommentUpdate,
    PostCreate,
    PostFilters,
    PostResponse,
    PostUpdate,
)
from event_manager.services.post_service import PostService
from event_manager.services.repositories import CommentRepo, PostRepo
from event_manager.utils.responses import paginated_response, success_response
from event_manager.utils.security import get_current_user, get_optional_user, request_metadata

router = APIRouter()
comments_router = APIRouter()

def _get_post(db: Session, post_id: int) -> Post:
    post = PostRepo.get_by_id(db, post_id)
    if not post:
        raise NotFoundError("Post", post_id)
    return post

def _get_comment(db: Session, comment_id: int) -> Comment:
    comment = CommentRepo.get_by_id(db, comment_id)
    if not comment:
        raise NotFoundError("Comment", comment_id)
    return comment

@router.get("")
async def list_posts(
    search: Optional[str] = None,
    tags: Optional[List[str]] = Query(None),
    author_id: Optional[int] = None,
    order_by: str = "created_at",
    order: str = "desc",
    page: int = 1,
    per_page: int = Query(settings.POSTS_PER_PAGE, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Published posts, filtered and paginated"""
    pagination = PaginationParams(page=page, per_page=per_page)
    filters = PostFilters(
        search=search,
        tags=tags,
        author_id=author_id,
        order_by=order_by,
        order=order,
        limit=pagination.limit,
        offset=pagination.offset,
    )

    posts = PostRepo.find_published(db, filters)
    total = PostRepo.count_published(db, filters)

    return paginated_response(
        message="Posts retrieved",
        items=[PostResponse.model_validate(post) for post in posts],
        pagination=pagination.to_dict(total),
    )

@router.get("/tags")
async def list_tags(db: Session = Depends(get_db)):
    return success_response(message="Tags retrieved", data=PostRepo.get_all_tags(db))

@router.get("/popular")
async def popular_posts(limit: int = Query(5, ge=1, le=50), db: Session = Depends(get_db)):
    """Published posts with the most comments"""
    posts = PostRepo.find_popular(db, limit=limit)
    return success_response(
        message="Popular posts retrieved",
        data=[PostResponse.model_validate(post) for post in posts],
    )

@router.post("", status_code=201)
async def create_post(
    data: PostCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    meta: RequestMetadata = Depends(request_metadata),
):
    post = PostService.create_post(db, data, user, meta)
    return success_response(
        message="Post created successfully",
        data=PostResponse.model_validate(post),
        status_code=201,
    )

@router.get("/{slug}")
async def get_post(
    slug: str,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    """Post by slug with its visible comments"""
    post = PostService.get_visible_post(db, slug, user)
    comments = CommentRepo.find_by_post(db, post.id)
    return success_response(
        message="Post retrieved",
        data={
            "post": PostResponse.model_validate(post),
            "comments": [CommentResponse.model_validate(c) for c in comments],
        },
    )

@router.patch("/{post_id}")
async def update_post(
    post_id: int,
    data: PostUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    meta: RequestMetadata = Depends(request_metadata),
):
    post = PostService.update_post(db, _get_post(db, post_id), data, user, meta)
    return success_response(message="Post updated successfully", data=PostResponse.model_validate(post))

@router.post("/{post_id}/publish")
async def publish_post(
    post_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    meta: RequestMetadata = Depends(request_metadata),
):
    post = PostService.publish_post(db, _get_post(db, post_id), user, meta)
    return success_response(message="Post published", data=PostResponse.model_validate(post))

@router.delete("/{post_id}")
async def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    meta: RequestMetadata = Depends(request_metadata),
):
    PostService.delete_post(db, _get_post(db, post_id), user, meta)
    return success_response(message="Post deleted successfully")

@router.post("/{post_id}/comments", status_code=201)
async def add_comment(
    post_id: int,
    data: CommentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    meta: RequestMetadata = Depends(request_metadata),
):
    """Comment on a post, or reply to a comment with parent_id"""
    comment = PostService.add_comment(db, _get_post(db, post_id), data, user, meta)
    return success_response(
        message="Comment added",
        data=CommentResponse.model_validate(comment),
        status_code=201,
    )

@comments_router.patch("/{comment_id}")
async def update_comment(
    comment_id: int,
    data: CommentUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    meta: RequestMetadata = Depends(request_metadata),
):
    comment = PostService.update_comment(db, _get_comment(db, comment_id), data, user, meta)
    return success_response(message="Comment updated", data=CommentResponse.model_validate(comment))

@comments_router.post("/{comment_id}/hide")
async def hide_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    meta: RequestMetadata = Depends(request_metadata),
):
    """Hide a comment (post author or admin)"""
    comment = PostService.hide_comment(db, _get_comment(db, comment_id), user, meta)
    return success_response(message="Comment hidden", data=CommentResponse.model_validate(comment))

@comments_router.delete("/{comment_id}")
async def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    meta: RequestMetadata = Depends(request_metadata),
):
    PostService.delete_comment(db, _get_comment(db, comment_id), user, meta)
    return success_response(message="Comment deleted")
