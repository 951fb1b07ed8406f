"""
Repository layer: the read queries (and the few guarded writes) behind the services.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import String, and_, cast, delete, func, insert, literal, or_, select
from sqlalchemy.orm import Query, Session

from event_manager.core.exceptions import InvalidFieldError
from event_manager.models import Comment, Event, EventLog, EventStatus, Post, User, event_participants
from event_manager.schemas.event import EventFilters
from event_manager.schemas.post import PostFilters
from event_manager.schemas.user import EventLogFilters
from event_manager.utils.clock import utcnow


def apply_ordering(query: Query, columns: Dict[str, Any], order_by: str, order: str, tiebreak) -> Query:
    """Order by a whitelisted column, falling back to the id for equal values"""
    column = columns.get(order_by)
    if column is None:
        raise InvalidFieldError(order_by, allowed=sorted(columns))
    direction = (order or "asc").lower()
    if direction not in ("asc", "desc"):
        raise InvalidFieldError(order, allowed=["asc", "desc"])
    if direction == "desc":
        return query.order_by(column.desc(), tiebreak.desc())
    return query.order_by(column.asc(), tiebreak.asc())


def apply_window(query: Query, limit: Optional[int], offset: Optional[int]) -> Query:
    if offset is not None:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query


def _contains(value: str) -> str:
    return f"%{value}%"


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# -------- User repository --------

class UserRepo:
    @staticmethod
    def get_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    @staticmethod
    def get_by_verification_token(db: Session, token: str) -> Optional[User]:
        return db.query(User).filter(User.email_verification_token == token).first()

    @staticmethod
    def email_taken(db: Session, email: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(User.id).filter(func.lower(User.email) == email.strip().lower())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None


# -------- Event repository --------

class EventRepo:
    ORDER_COLUMNS = {
        "id": Event.id,
        "title": Event.title,
        "status": Event.status,
        "location": Event.location,
        "start_date": Event.start_date,
        "end_date": Event.end_date,
        "max_participants": Event.max_participants,
        "created_at": Event.created_at,
        "updated_at": Event.updated_at,
    }

    @staticmethod
    def get_by_id(db: Session, event_id: int) -> Optional[Event]:
        return db.query(Event).filter(Event.id == event_id).first()

    @staticmethod
    def _filtered(db: Session, filters: EventFilters) -> Query:
        query = db.query(Event)
        if filters.status is not None:
            query = query.filter(Event.status == EventStatus(filters.status).value)
        if filters.start_date is not None:
            query = query.filter(Event.start_date >= filters.start_date)
        if filters.end_date is not None:
            query = query.filter(Event.end_date <= filters.end_date)
        if filters.location:
            query = query.filter(Event.location.ilike(_contains(filters.location)))
        if filters.search:
            pattern = _contains(filters.search)
            query = query.filter(or_(Event.title.ilike(pattern), Event.description.ilike(pattern)))
        return query

    @staticmethod
    def find_with_filters(db: Session, filters: EventFilters) -> List[Event]:
        query = EventRepo._filtered(db, filters)
        query = apply_ordering(query, EventRepo.ORDER_COLUMNS, filters.order_by, filters.order, Event.id)
        return apply_window(query, filters.limit, filters.offset).all()

    @staticmethod
    def count_with_filters(db: Session, filters: EventFilters) -> int:
        return EventRepo._filtered(db, filters).count()

    @staticmethod
    def find_upcoming(db: Session, limit: int = 10, now: Optional[datetime] = None) -> List[Event]:
        return db.query(Event).filter(
            Event.start_date > (now or utcnow()),
            Event.status != EventStatus.CANCELLED.value,
        ).order_by(Event.start_date.asc(), Event.id.asc()).limit(limit).all()

    @staticmethod
    def find_by_participant(db: Session, user_id: int) -> List[Event]:
        return db.query(Event).join(
            event_participants, event_participants.c.event_id == Event.id
        ).filter(
            event_participants.c.user_id == user_id
        ).order_by(Event.start_date.asc(), Event.id.asc()).all()

    @staticmethod
    def find_by_creator(db: Session, user_id: int) -> List[Event]:
        return db.query(Event).filter(
            Event.created_by_id == user_id
        ).order_by(Event.created_at.desc(), Event.id.desc()).all()

    @staticmethod
    def find_needing_reminder(db: Session, threshold: datetime, now: Optional[datetime] = None) -> List[Event]:
        """Planned events starting between now and the threshold"""
        return db.query(Event).filter(
            Event.start_date <= threshold,
            Event.start_date > (now or utcnow()),
            Event.status == EventStatus.PLANNED.value,
        ).order_by(Event.start_date.asc()).all()

    @staticmethod
    def get_event_stats(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or utcnow()
        return {
            "total": db.query(Event).count(),
            "upcoming": db.query(Event).filter(Event.start_date > now).count(),
            "ongoing": db.query(Event).filter(Event.status == EventStatus.ONGOING.value).count(),
            "completed": db.query(Event).filter(Event.status == EventStatus.COMPLETED.value).count(),
        }

    @staticmethod
    def lock(db: Session, event_id: int) -> Optional[Event]:
        """Lock the event row for the rest of the transaction (no-op on SQLite)"""
        return db.query(Event).filter(Event.id == event_id).with_for_update().first()

    @staticmethod
    def insert_participant_if_capacity(db: Session, event_id: int, user_id: int) -> int:
        """
        Insert the membership row only while the event still has room.

        Returns the number of inserted rows (0 when the event is full or gone).
        A duplicate membership surfaces as an IntegrityError.
        """
        current = select(func.count()).select_from(event_participants).where(
            event_participants.c.event_id == event_id
        ).scalar_subquery()
        source = select(Event.id, literal(user_id)).where(
            Event.id == event_id,
            or_(Event.max_participants == 0, current < Event.max_participants),
        )
        result = db.execute(
            insert(event_participants).from_select(["event_id", "user_id"], source)
        )
        return result.rowcount

    @staticmethod
    def delete_participant(db: Session, event_id: int, user_id: int) -> int:
        result = db.execute(
            delete(event_participants).where(
                event_participants.c.event_id == event_id,
                event_participants.c.user_id == user_id,
            )
        )
        return result.rowcount


# -------- Post repository --------

class PostRepo:
    ORDER_COLUMNS = {
        "id": Post.id,
        "title": Post.title,
        "slug": Post.slug,
        "created_at": Post.created_at,
        "updated_at": Post.updated_at,
    }

    @staticmethod
    def get_by_id(db: Session, post_id: int) -> Optional[Post]:
        return db.query(Post).filter(Post.id == post_id).first()

    @staticmethod
    def has_tag(tag: str):
        # tags are stored as a JSON array serialized with json.dumps
        token = _escape_like(json.dumps(tag))
        return cast(Post.tags, String).like(_contains(token), escape="\\")

    @staticmethod
    def _filtered(db: Session, filters: PostFilters) -> Query:
        query = db.query(Post)
        if filters.published_only:
            query = query.filter(Post.is_published.is_(True))
        if filters.search:
            pattern = _contains(filters.search)
            query = query.filter(or_(
                Post.title.ilike(pattern),
                Post.content.ilike(pattern),
                Post.excerpt.ilike(pattern),
            ))
        for tag in filters.tags or []:
            query = query.filter(PostRepo.has_tag(tag))
        if filters.author_id is not None:
            query = query.filter(Post.author_id == filters.author_id)
        return query

    @staticmethod
    def find_published(db: Session, filters: PostFilters) -> List[Post]:
        query = PostRepo._filtered(db, filters)
        query = apply_ordering(query, PostRepo.ORDER_COLUMNS, filters.order_by, filters.order, Post.id)
        return apply_window(query, filters.limit, filters.offset).all()

    @staticmethod
    def count_published(db: Session, filters: PostFilters) -> int:
        return PostRepo._filtered(db, filters).count()

    @staticmethod
    def find_by_slug(db: Session, slug: str, published_only: bool = True) -> Optional[Post]:
        query = db.query(Post).filter(Post.slug == slug)
        if published_only:
            query = query.filter(Post.is_published.is_(True))
        return query.first()

    @staticmethod
    def slug_taken(db: Session, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(Post.id).filter(Post.slug == slug)
        if exclude_id is not None:
            query = query.filter(Post.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def find_recent(db: Session, limit: int = 5) -> List[Post]:
        return db.query(Post).filter(
            Post.is_published.is_(True)
        ).order_by(Post.created_at.desc(), Post.id.desc()).limit(limit).all()

    @staticmethod
    def find_by_author(db: Session, author_id: int, published_only: bool = True) -> List[Post]:
        query = db.query(Post).filter(Post.author_id == author_id)
        if published_only:
            query = query.filter(Post.is_published.is_(True))
        return query.order_by(Post.created_at.desc(), Post.id.desc()).all()

    @staticmethod
    def find_by_tag(db: Session, tag: str) -> List[Post]:
        return db.query(Post).filter(
            Post.is_published.is_(True),
            PostRepo.has_tag(tag),
        ).order_by(Post.created_at.desc(), Post.id.desc()).all()

    @staticmethod
    def get_all_tags(db: Session) -> List[str]:
        tags = set()
        for (post_tags,) in db.query(Post.tags).filter(Post.is_published.is_(True)).all():
            tags.update(post_tags or [])
        return sorted(tags)

    @staticmethod
    def find_popular(db: Session, limit: int = 5) -> List[Post]:
        """Published posts ordered by their number of visible comments"""
        comment_count = func.count(Comment.id)
        return db.query(Post).outerjoin(
            Comment, and_(Comment.post_id == Post.id, Comment.is_hidden.is_(False))
        ).filter(
            Post.is_published.is_(True)
        ).group_by(Post.id).order_by(comment_count.desc(), Post.id.asc()).limit(limit).all()

    @staticmethod
    def search(db: Session, text: str, limit: int = 10) -> List[Post]:
        return PostRepo.find_published(db, PostFilters(search=text, limit=limit))


# -------- Comment repository --------

class CommentRepo:
    @staticmethod
    def get_by_id(db: Session, comment_id: int) -> Optional[Comment]:
        return db.query(Comment).filter(Comment.id == comment_id).first()

    @staticmethod
    def find_by_post(db: Session, post_id: int, include_hidden: bool = False) -> List[Comment]:
        query = db.query(Comment).filter(Comment.post_id == post_id)
        if not include_hidden:
            query = query.filter(Comment.is_hidden.is_(False))
        return query.order_by(Comment.created_at.asc(), Comment.id.asc()).all()

    @staticmethod
    def find_by_author(db: Session, author_id: int) -> List[Comment]:
        return db.query(Comment).filter(
            Comment.author_id == author_id
        ).order_by(Comment.created_at.desc(), Comment.id.desc()).all()

    @staticmethod
    def find_recent(db: Session, limit: int = 10, include_hidden: bool = False) -> List[Comment]:
        query = db.query(Comment)
        if not include_hidden:
            query = query.filter(Comment.is_hidden.is_(False))
        return query.order_by(Comment.created_at.desc(), Comment.id.desc()).limit(limit).all()

    @staticmethod
    def find_replies(db: Session, comment_id: int) -> List[Comment]:
        return db.query(Comment).filter(
            Comment.parent_id == comment_id,
            Comment.is_hidden.is_(False),
        ).order_by(Comment.created_at.asc(), Comment.id.asc()).all()

    @staticmethod
    def count_by_post(db: Session, post_id: int, include_hidden: bool = False) -> int:
        query = db.query(Comment).filter(Comment.post_id == post_id)
        if not include_hidden:
            query = query.filter(Comment.is_hidden.is_(False))
        return query.count()

    @staticmethod
    def find_moderation_queue(db: Session) -> List[Comment]:
        return db.query(Comment).filter(
            Comment.is_hidden.is_(True)
        ).order_by(Comment.created_at.desc(), Comment.id.desc()).all()

    @staticmethod
    def get_comment_stats(db: Session) -> Dict[str, int]:
        return {
            "total": db.query(Comment).count(),
            "published": db.query(Comment).filter(Comment.is_hidden.is_(False)).count(),
            "hidden": db.query(Comment).filter(Comment.is_hidden.is_(True)).count(),
        }


# -------- EventLog repository --------

class EventLogRepo:
    @staticmethod
    def create(
        db: Session,
        event_type: str,
        payload: Dict[str, Any],
        user_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EventLog:
        log = EventLog(
            event_type=event_type,
            payload=payload,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(log)
        db.commit()
        db.refresh(log)
        return log

    @staticmethod
    def _newest_first(query: Query) -> Query:
        return query.order_by(EventLog.created_at.desc(), EventLog.id.desc())

    @staticmethod
    def find_by_event_type(db: Session, event_type: str, limit: int = 100) -> List[EventLog]:
        query = db.query(EventLog).filter(EventLog.event_type == event_type)
        return EventLogRepo._newest_first(query).limit(limit).all()

    @staticmethod
    def find_by_user(db: Session, user_id: int, limit: int = 100) -> List[EventLog]:
        query = db.query(EventLog).filter(EventLog.user_id == user_id)
        return EventLogRepo._newest_first(query).limit(limit).all()

    @staticmethod
    def find_recent(db: Session, limit: int = 50) -> List[EventLog]:
        return EventLogRepo._newest_first(db.query(EventLog)).limit(limit).all()

    @staticmethod
    def find_by_date_range(
        db: Session,
        start_date: datetime,
        end_date: datetime,
        event_type: Optional[str] = None,
    ) -> List[EventLog]:
        query = db.query(EventLog).filter(
            EventLog.created_at >= start_date,
            EventLog.created_at <= end_date,
        )
        if event_type:
            query = query.filter(EventLog.event_type == event_type)
        return EventLogRepo._newest_first(query).all()

    @staticmethod
    def _count_by_type(query: Query) -> List[Dict[str, Any]]:
        count = func.count(EventLog.id).label("count")
        rows = query.with_entities(EventLog.event_type, count).group_by(
            EventLog.event_type
        ).order_by(count.desc(), EventLog.event_type.asc()).all()
        return [{"event_type": row.event_type, "count": row.count} for row in rows]

    @staticmethod
    def get_event_stats(db: Session, days: int = 30, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        since = (now or utcnow()) - timedelta(days=days)
        return EventLogRepo._count_by_type(db.query(EventLog).filter(EventLog.created_at >= since))

    @staticmethod
    def get_user_activity_stats(
        db: Session, user_id: int, days: int = 30, now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        since = (now or utcnow()) - timedelta(days=days)
        return EventLogRepo._count_by_type(db.query(EventLog).filter(
            EventLog.user_id == user_id,
            EventLog.created_at >= since,
        ))

    @staticmethod
    def clean_old_logs(db: Session, days_to_keep: int = 90, now: Optional[datetime] = None) -> int:
        cutoff = (now or utcnow()) - timedelta(days=days_to_keep)
        deleted = db.query(EventLog).filter(
            EventLog.created_at < cutoff
        ).delete(synchronize_session=False)
        db.commit()
        return deleted

    @staticmethod
    def _filtered(db: Session, filters: EventLogFilters) -> Query:
        query = db.query(EventLog)
        if filters.event_type:
            query = query.filter(EventLog.event_type == filters.event_type)
        if filters.user_id is not None:
            query = query.filter(EventLog.user_id == filters.user_id)
        if filters.start_date is not None:
            query = query.filter(EventLog.created_at >= filters.start_date)
        if filters.end_date is not None:
            query = query.filter(EventLog.created_at <= filters.end_date)
        return query

    @staticmethod
    def find_with_filters(db: Session, filters: EventLogFilters) -> List[EventLog]:
        query = EventLogRepo._newest_first(EventLogRepo._filtered(db, filters))
        return apply_window(query, filters.limit, filters.offset).all()

    @staticmethod
    def count_with_filters(db: Session, filters: EventLogFilters) -> int:
        return EventLogRepo._filtered(db, filters).count()
