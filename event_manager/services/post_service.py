"""
Post and comment authoring and moderation
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from event_manager.core.exceptions import DuplicateSlugError, ForbiddenError, NotFoundError, ValidationError
from event_manager.models import Comment, EventLogType, Post, User
from event_manager.models.post import slugify
from event_manager.schemas.common import RequestMetadata
from event_manager.schemas.post import CommentCreate, CommentUpdate, PostCreate, PostUpdate
from event_manager.services.event_log_service import EventLogService
from event_manager.services.event_service import can_edit
from event_manager.services.repositories import CommentRepo, PostRepo

logger = logging.getLogger(__name__)


def _commit_post(db: Session, post: Post) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateSlugError(post.slug)


class PostService:
    """Service for posts and their comments"""

    @staticmethod
    def can_edit_post(post: Post, actor: Optional[User]) -> bool:
        return actor is not None and can_edit(actor.id, actor.get_roles(), post.author_id)

    @staticmethod
    def can_moderate_comment(comment: Comment, actor: Optional[User]) -> bool:
        """Administrators and the author of the post may moderate its comments"""
        return actor is not None and can_edit(actor.id, actor.get_roles(), comment.post.author_id)

    @staticmethod
    def can_edit_comment(comment: Comment, actor: Optional[User]) -> bool:
        return actor is not None and can_edit(actor.id, actor.get_roles(), comment.author_id)

    @staticmethod
    def get_visible_post(db: Session, slug: str, viewer: Optional[User] = None) -> Post:
        """Published post by slug; drafts are visible to their editors only"""
        post = PostRepo.find_by_slug(db, slug, published_only=False)
        if post is None or (not post.is_published and not PostService.can_edit_post(post, viewer)):
            raise NotFoundError("Post", slug)
        return post

    @staticmethod
    def create_post(
        db: Session,
        data: PostCreate,
        author: User,
        meta: Optional[RequestMetadata] = None,
    ) -> Post:
        slug = slugify(data.title)
        if PostRepo.slug_taken(db, slug):
            raise DuplicateSlugError(slug)

        post = Post(
            title=data.title.strip(),
            content=data.content,
            tags=data.tags,
            is_published=data.is_published,
            featured_image=data.featured_image,
            author_id=author.id,
        )
        db.add(post)
        _commit_post(db, post)
        db.refresh(post)
        logger.info(f"Post {post.id} created by user {author.id}")

        EventLogService.log_safely(
            db,
            EventLogType.POST_CREATED,
            EventLogService.post_payload(post),
            user=author,
            meta=meta,
        )
        return post

    @staticmethod
    def update_post(
        db: Session,
        post: Post,
        data: PostUpdate,
        actor: User,
        meta: Optional[RequestMetadata] = None,
    ) -> Post:
        if not PostService.can_edit_post(post, actor):
            raise ForbiddenError("You are not allowed to edit this post.")

        changes = data.model_dump(exclude_unset=True)
        for field in ("title", "content"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be empty.", field=field)

        if "title" in changes:
            changes["title"] = changes["title"].strip()
            slug = slugify(changes["title"])
            if PostRepo.slug_taken(db, slug, exclude_id=post.id):
                raise DuplicateSlugError(slug)
        if "tags" in changes and changes["tags"] is None:
            changes["tags"] = []

        for field, value in changes.items():
            setattr(post, field, value)

        _commit_post(db, post)
        db.refresh(post)
        logger.info(f"Post {post.id} updated by user {actor.id}")

        EventLogService.log_safely(
            db,
            EventLogType.POST_UPDATED,
            EventLogService.post_payload(post),
            user=actor,
            meta=meta,
        )
        return post

    @staticmethod
    def publish_post(
        db: Session,
        post: Post,
        actor: User,
        meta: Optional[RequestMetadata] = None,
    ) -> Post:
        if not PostService.can_edit_post(post, actor):
            raise ForbiddenError("You are not allowed to publish this post.")
        if post.is_published:
            return post

        post.is_published = True
        db.commit()
        db.refresh(post)
        logger.info(f"Post {post.id} published by user {actor.id}")

        EventLogService.log_safely(
            db,
            EventLogType.POST_PUBLISHED,
            EventLogService.post_payload(post),
            user=actor,
            meta=meta,
        )
        return post

    @staticmethod
    def delete_post(
        db: Session,
        post: Post,
        actor: User,
        meta: Optional[RequestMetadata] = None,
    ) -> None:
        if not PostService.can_edit_post(post, actor):
            raise ForbiddenError("You are not allowed to delete this post.")

        snapshot = EventLogService.post_payload(post)
        db.delete(post)
        db.commit()
        logger.info(f"Post {snapshot['post_id']} deleted by user {actor.id}")

        EventLogService.log_safely(db, EventLogType.POST_DELETED, snapshot, user=actor, meta=meta)

    # Comments

    @staticmethod
    def add_comment(
        db: Session,
        post: Post,
        data: CommentCreate,
        author: User,
        meta: Optional[RequestMetadata] = None,
    ) -> Comment:
        """Comment on a post, or reply to one of its comments"""
        if not post.is_published and not PostService.can_edit_post(post, author):
            raise NotFoundError("Post", post.id)

        parent = None
        if data.parent_id is not None:
            parent = CommentRepo.get_by_id(db, data.parent_id)
            if parent is None or parent.post_id != post.id:
                raise ValidationError("A reply must belong to the same post as its parent.", field="parent_id")

        comment = Comment(content=data.content, post=post, author_id=author.id, parent=parent)
        db.add(comment)
        db.commit()
        db.refresh(comment)
        logger.info(f"Comment {comment.id} added to post {post.id} by user {author.id}")

        EventLogService.log_safely(
            db,
            EventLogType.COMMENT_CREATED,
            EventLogService.comment_payload(comment),
            user=author,
            meta=meta,
        )
        return comment

    @staticmethod
    def update_comment(
        db: Session,
        comment: Comment,
        data: CommentUpdate,
        actor: User,
        meta: Optional[RequestMetadata] = None,
    ) -> Comment:
        if not PostService.can_edit_comment(comment, actor):
            raise ForbiddenError("You are not allowed to edit this comment.")

        comment.content = data.content
        db.commit()
        db.refresh(comment)

        EventLogService.log_safely(
            db,
            EventLogType.COMMENT_UPDATED,
            EventLogService.comment_payload(comment),
            user=actor,
            meta=meta,
        )
        return comment

    @staticmethod
    def hide_comment(
        db: Session,
        comment: Comment,
        actor: User,
        meta: Optional[RequestMetadata] = None,
    ) -> Comment:
        if not PostService.can_moderate_comment(comment, actor):
            raise ForbiddenError("You are not allowed to moderate this comment.")

        comment.is_hidden = True
        db.commit()
        db.refresh(comment)
        logger.info(f"Comment {comment.id} hidden by user {actor.id}")

        EventLogService.log_safely(
            db,
            EventLogType.COMMENT_HIDDEN,
            EventLogService.comment_payload(comment),
            user=actor,
            meta=meta,
        )
        return comment

    @staticmethod
    def delete_comment(
        db: Session,
        comment: Comment,
        actor: User,
        meta: Optional[RequestMetadata] = None,
    ) -> None:
        if not (PostService.can_edit_comment(comment, actor) or PostService.can_moderate_comment(comment, actor)):
            raise ForbiddenError("You are not allowed to delete this comment.")

        snapshot = EventLogService.comment_payload(comment)
        db.delete(comment)
        db.commit()

        EventLogService.log_safely(db, EventLogType.COMMENT_DELETED, snapshot, user=actor, meta=meta)
