"""
Community features: feed posts, groups, events, success stories, eco tips
and the leaderboard.
"""

import logging
from datetime import datetime, timedelta, timezone

from models import (
    db, Profile, Post, PostLike, PostComment, Group, GroupMember, GroupMessage,
    CommunityEvent, EventAttendee, SuccessStory, StoryLike, EcoTip, TipVote,
)
from email_service import send_community_interaction_email, send_post_published_email
from cloudinary_helper import delete_image, avatar_thumbnail

logger = logging.getLogger('relief.community')

MAX_POST_LENGTH = 2000
MAX_COMMENT_LENGTH = 500
MAX_MESSAGE_LENGTH = 1000
FEED_LIMIT = 50

LEADERBOARD_METRICS = {
    'balance': Profile.balance,
    'carbon_savings': Profile.carbon_savings,
    'streak': Profile.streak,
}


class CommunityError(Exception):
    def __init__(self, message, status=400):
        super().__init__(message)
        self.message = message
        self.status = status


def clean_text(value, field, limit):
    """Stripped text, or CommunityError if it is empty or too long."""
    text = (value or '').strip() if isinstance(value, str) else ''
    if not text:
        raise CommunityError(f'{field} cannot be empty.')
    if len(text) > limit:
        raise CommunityError(f'{field} is too long ({limit} character limit).')
    return text


def _display_name(profile):
    return (profile.username if profile else None) or 'Eco Warrior'


def _notify_post_owner(post, actor, action_type, preview):
    """Email the post's author about a like or comment by someone else."""
    if post.user_id == actor.id:
        return False
    owner = db.session.get(Profile, post.user_id)
    if not owner or not owner.email:
        return False
    return send_community_interaction_email(owner.email, _display_name(owner), _display_name(actor),
                                            action_type, preview)


# --- Posts ---

def get_feed(viewer_id, limit=FEED_LIMIT):
    posts = Post.query.order_by(Post.created_at.desc(), Post.id.desc()).limit(limit).all()
    return [p.to_dict(viewer_id) for p in posts]


def create_post(profile, content, image=None):
    """Publish a post. ``image`` is the {url, public_id} result of an upload."""
    content = clean_text(content, 'Post', MAX_POST_LENGTH)
    post = Post(
        user_id=profile.id,
        author_name=_display_name(profile),
        content=content,
        image_url=image['url'] if image else None,
        image_public_id=image['public_id'] if image else None,
    )
    db.session.add(post)
    db.session.commit()
    logger.info(f'Post {post.id} created by {profile.id}')

    if profile.email:
        send_post_published_email(profile.email, _display_name(profile), content)
    return post


def get_post(post_id):
    post = db.session.get(Post, post_id)
    if not post:
        raise CommunityError('Post not found', 404)
    return post


def delete_post(user_id, post_id):
    post = get_post(post_id)
    if post.user_id != user_id:
        raise CommunityError('You can only delete your own posts', 403)
    remove_post(post)


def remove_post(post):
    public_id = post.image_public_id
    db.session.delete(post)
    db.session.commit()
    if public_id:
        delete_image(public_id)


def toggle_post_like(profile, post_id):
    """Like or unlike a post.

    Returns:
        (liked, likes_count)
    """
    post = get_post(post_id)
    existing = PostLike.query.filter_by(post_id=post.id, user_id=profile.id).first()
    if existing:
        db.session.delete(existing)
        post.likes_count = max(0, (post.likes_count or 0) - 1)
    else:
        db.session.add(PostLike(post_id=post.id, user_id=profile.id))
        post.likes_count = (post.likes_count or 0) + 1
    db.session.commit()

    if not existing:
        _notify_post_owner(post, profile, 'like', post.content)
    return existing is None, post.likes_count


def list_comments(post_id):
    return [c.to_dict() for c in get_post(post_id).comments]


def add_comment(profile, post_id, content):
    post = get_post(post_id)
    content = clean_text(content, 'Comment', MAX_COMMENT_LENGTH)
    comment = PostComment(post_id=post.id, user_id=profile.id, author_name=_display_name(profile),
                          content=content)
    db.session.add(comment)
    db.session.commit()

    _notify_post_owner(post, profile, 'comment', content)
    return comment


# --- Groups ---

def list_groups(viewer_id):
    groups = Group.query.order_by(Group.created_at.desc()).all()
    items = [g.to_dict(viewer_id) for g in groups]
    items.sort(key=lambda g: -g['member_count'])
    return items


def get_group(group_id):
    group = db.session.get(Group, group_id)
    if not group:
        raise CommunityError('Group not found', 404)
    return group


def create_group(profile, name, description=None, category=None):
    """Create a group; its creator is its first member."""
    name = clean_text(name, 'Group name', 120)
    group = Group(name=name, description=(description or '').strip() or None,
                  category=(category or '').strip() or None, creator_id=profile.id)
    db.session.add(group)
    db.session.flush()
    db.session.add(GroupMember(group_id=group.id, user_id=profile.id))
    db.session.commit()
    logger.info(f'Group {group.id} created by {profile.id}')
    return group


def is_member(group_id, user_id):
    return GroupMember.query.filter_by(group_id=group_id, user_id=user_id).first() is not None


def join_group(user_id, group_id):
    group = get_group(group_id)
    if is_member(group.id, user_id):
        raise CommunityError('Already a member of this group', 409)
    db.session.add(GroupMember(group_id=group.id, user_id=user_id))
    db.session.commit()
    return group


def leave_group(user_id, group_id):
    group = get_group(group_id)
    membership = GroupMember.query.filter_by(group_id=group.id, user_id=user_id).first()
    if not membership:
        raise CommunityError('Not a member of this group', 404)
    db.session.delete(membership)
    db.session.commit()
    return group


def group_members(group_id):
    group = get_group(group_id)
    return [{
        'user_id': m.user_id,
        'username': _display_name(m.profile),
        'avatar_url': avatar_thumbnail(m.profile.avatar_url) if m.profile else None,
        'joined_at': m.joined_at.isoformat() if m.joined_at else None,
    } for m in group.members]


def group_messages(user_id, group_id, limit=100):
    group = get_group(group_id)
    if not is_member(group.id, user_id):
        raise CommunityError('Join the group to read its chat', 403)
    messages = (GroupMessage.query
                .filter_by(group_id=group.id)
                .order_by(GroupMessage.created_at.desc(), GroupMessage.id.desc())
                .limit(limit)
                .all())
    return [m.to_dict() for m in reversed(messages)]


def post_group_message(profile, group_id, content):
    group = get_group(group_id)
    if not is_member(group.id, profile.id):
        raise CommunityError('Join the group to chat', 403)
    content = clean_text(content, 'Message', MAX_MESSAGE_LENGTH)
    message = GroupMessage(group_id=group.id, user_id=profile.id, author_name=_display_name(profile),
                           content=content)
    db.session.add(message)
    db.session.commit()
    return message


# --- Events ---

def _as_utc(value):
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_event_date(value):
    """ISO 8601 date-time string to a naive UTC datetime."""
    if not isinstance(value, str) or not value.strip():
        raise CommunityError('Event date is required.')
    try:
        parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        raise CommunityError('Event date must be an ISO 8601 date-time.')
    return _as_utc(parsed)


def create_event(profile, title, date_value, location=None, description=None):
    event = CommunityEvent(
        title=clean_text(title, 'Event title', 200),
        date=parse_event_date(date_value),
        location=(location or '').strip() or None,
        description=(description or '').strip() or None,
        organizer_id=profile.id,
    )
    db.session.add(event)
    db.session.commit()
    return event


def upcoming_events(viewer_id, now=None):
    now = _as_utc(now or datetime.now(timezone.utc))
    events = (CommunityEvent.query
              .filter(CommunityEvent.date >= now)
              .order_by(CommunityEvent.date.asc())
              .all())
    return [e.to_dict(viewer_id) for e in events]


def get_event(event_id):
    event = db.session.get(CommunityEvent, event_id)
    if not event:
        raise CommunityError('Event not found', 404)
    return event


def toggle_rsvp(user_id, event_id):
    """Returns (attending, attendee_count)."""
    event = get_event(event_id)
    existing = EventAttendee.query.filter_by(event_id=event.id, user_id=user_id).first()
    if existing:
        db.session.delete(existing)
    else:
        db.session.add(EventAttendee(event_id=event.id, user_id=user_id))
    db.session.commit()
    return existing is None, EventAttendee.query.filter_by(event_id=event.id).count()


def event_attendees(event_id):
    event = get_event(event_id)
    return [{
        'user_id': a.user_id,
        'username': _display_name(a.profile),
        'avatar_url': avatar_thumbnail(a.profile.avatar_url) if a.profile else None,
    } for a in event.attendees]


def events_on(day_start, day_end):
    """Events with day_start <= date < day_end (naive UTC bounds)."""
    return (CommunityEvent.query
            .filter(CommunityEvent.date >= day_start, CommunityEvent.date < day_end)
            .order_by(CommunityEvent.date.asc())
            .all())


def tomorrow_bounds(now=None):
    now = now or datetime.now(timezone.utc)
    start = datetime(now.year, now.month, now.day) + timedelta(days=1)
    return start, start + timedelta(days=1)


# --- Success stories ---

def list_stories():
    stories = SuccessStory.query.order_by(SuccessStory.created_at.desc(), SuccessStory.id.desc()).all()
    return [s.to_dict() for s in stories]


def create_story(profile, title, content, co2_saved=0):
    try:
        co2_saved = float(co2_saved or 0)
    except (TypeError, ValueError):
        raise CommunityError('co2_saved must be a number.')
    if co2_saved < 0:
        raise CommunityError('co2_saved cannot be negative.')
    story = SuccessStory(
        user_id=profile.id,
        author_name=_display_name(profile),
        title=clean_text(title, 'Story title', 200),
        content=clean_text(content, 'Story', MAX_POST_LENGTH),
        co2_saved=co2_saved,
    )
    db.session.add(story)
    db.session.commit()
    return story


def toggle_story_like(user_id, story_id):
    story = db.session.get(SuccessStory, story_id)
    if not story:
        raise CommunityError('Story not found', 404)
    existing = StoryLike.query.filter_by(story_id=story.id, user_id=user_id).first()
    if existing:
        db.session.delete(existing)
        story.likes_count = max(0, (story.likes_count or 0) - 1)
    else:
        db.session.add(StoryLike(story_id=story.id, user_id=user_id))
        story.likes_count = (story.likes_count or 0) + 1
    db.session.commit()
    return existing is None, story.likes_count


# --- Eco tips ---

def list_tips():
    return [t.to_dict() for t in EcoTip.query.order_by(EcoTip.votes.desc(), EcoTip.id.asc()).all()]


def toggle_tip_vote(user_id, tip_id):
    tip = db.session.get(EcoTip, tip_id)
    if not tip:
        raise CommunityError('Tip not found', 404)
    existing = TipVote.query.filter_by(tip_id=tip.id, user_id=user_id).first()
    if existing:
        db.session.delete(existing)
        tip.votes = max(0, (tip.votes or 0) - 1)
    else:
        db.session.add(TipVote(tip_id=tip.id, user_id=user_id))
        tip.votes = (tip.votes or 0) + 1
    db.session.commit()
    return existing is None, tip.votes


# --- Leaderboard ---

def get_leaderboard(metric='balance', limit=10):
    column = LEADERBOARD_METRICS.get(metric)
    if column is None:
        raise CommunityError(f'Unknown leaderboard metric: {metric}')
    profiles = Profile.query.order_by(column.desc(), Profile.created_at.asc()).limit(limit).all()
    return [{
        'rank': index,
        'id': p.id,
        'username': _display_name(p),
        'avatar_url': avatar_thumbnail(p.avatar_url),
        'balance': p.balance or 0,
        'carbon_savings': round(p.carbon_savings or 0, 2),
        'streak': p.streak or 0,
    } for index, p in enumerate(profiles, start=1)]
