"""
SQLAlchemy Models for ReLief
Profiles, carbon activity, gamification and community tables
"""

from flask_sqlalchemy import SQLAlchemy
from datetime import datetime, timezone

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc)


class Profile(db.Model):
    __tablename__ = 'profiles'

    # Clerk user id (e.g. "user_2abc...")
    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(254), index=True)
    username = db.Column(db.String(120), default='User')
    avatar_url = db.Column(db.String(512))
    carbon_total = db.Column(db.Float, default=0)
    carbon_savings = db.Column(db.Float, default=0)
    annual_footprint = db.Column(db.Float)
    streak = db.Column(db.Integer, default=0)
    longest_streak = db.Column(db.Integer, default=0)
    balance = db.Column(db.Integer, default=0)
    badge_count = db.Column(db.Integer, default=0)
    timezone = db.Column(db.String(64), default='UTC')
    onboarding_completed = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    # Relationships
    activities = db.relationship('Activity', back_populates='profile', cascade='all, delete-orphan')
    bills = db.relationship('Bill', back_populates='profile', cascade='all, delete-orphan')
    logins = db.relationship('LoginHistory', back_populates='profile', cascade='all, delete-orphan')
    badges = db.relationship('UserBadge', back_populates='profile', cascade='all, delete-orphan')
    points_history = db.relationship('PointsHistory', back_populates='profile', cascade='all, delete-orphan')
    posts = db.relationship('Post', back_populates='author', cascade='all, delete-orphan')
    memberships = db.relationship('GroupMember', back_populates='profile', cascade='all, delete-orphan')
    rewards = db.relationship('UserReward', back_populates='profile', cascade='all, delete-orphan')
    budget = db.relationship('CarbonBudget', back_populates='profile', uselist=False, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'username': self.username,
            'avatar_url': self.avatar_url,
            'carbon_total': round(self.carbon_total or 0, 2),
            'carbon_savings': round(self.carbon_savings or 0, 2),
            'streak': self.streak or 0,
            'longest_streak': self.longest_streak or 0,
            'balance': self.balance or 0,
            'badge_count': self.badge_count or 0,
            'timezone': self.timezone or 'UTC',
            'onboarding_completed': bool(self.onboarding_completed),
        }

    def __repr__(self):
        return f'<Profile {self.username}>'


class LoginHistory(db.Model):
    __tablename__ = 'login_history'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'login_date', name='uq_login_daily'),
        db.Index('idx_login_history_user_date', 'user_id', 'login_date'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    login_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    profile = db.relationship('Profile', back_populates='logins')

    def __repr__(self):
        return f'<LoginHistory user={self.user_id} date={self.login_date}>'


class Activity(db.Model):
    __tablename__ = 'activities'
    __table_args__ = (
        db.Index('idx_activities_user_created', 'user_id', 'created_at'),
        db.Index('idx_activities_user_type_date', 'user_id', 'type', 'log_date'),
        # One daily log per user per local day
        db.Index('uq_activities_daily_log', 'user_id', 'log_date', unique=True,
                 sqlite_where=db.text("type = 'calculator'"),
                 postgresql_where=db.text("type = 'calculator'")),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    type = db.Column(db.String(30), nullable=False)  # calculator, bill_upload
    category = db.Column(db.String(30), nullable=False)
    description = db.Column(db.String(300))
    impact = db.Column(db.Float, default=0)  # kg CO2
    # "metadata" is reserved on declarative models
    details = db.Column('metadata', db.JSON)
    notes = db.Column(db.Text)
    log_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    profile = db.relationship('Profile', back_populates='activities')

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'category': self.category,
            'description': self.description,
            'impact': self.impact,
            'metadata': self.details,
            'notes': self.notes,
            'log_date': self.log_date.isoformat() if self.log_date else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Bill(db.Model):
    __tablename__ = 'bills'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False, index=True)
    bill_type = db.Column(db.String(20), nullable=False)  # electricity, lpg, shopping
    units_consumed = db.Column(db.Float)
    amount = db.Column(db.Float)
    provider = db.Column(db.String(120))
    bill_date = db.Column(db.String(20))
    carbon_emissions = db.Column(db.Float, default=0)
    emission_factor = db.Column(db.Float, default=0)
    confidence = db.Column(db.Float)
    image_url = db.Column(db.String(512))
    extracted_data = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=utcnow)

    profile = db.relationship('Profile', back_populates='bills')

    def to_dict(self):
        return {
            'id': self.id,
            'bill_type': self.bill_type,
            'units_consumed': self.units_consumed,
            'amount': self.amount,
            'provider': self.provider,
            'bill_date': self.bill_date,
            'carbon_emissions': self.carbon_emissions,
            'emission_factor': self.emission_factor,
            'confidence': self.confidence,
            'image_url': self.image_url,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class CarbonBudget(db.Model):
    __tablename__ = 'carbon_budgets'

    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), primary_key=True)
    monthly_limit = db.Column(db.Float, nullable=False, default=500)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    profile = db.relationship('Profile', back_populates='budget')


class Badge(db.Model):
    __tablename__ = 'badges'

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(20), nullable=False)  # carbon, streak, community, action, milestone
    icon = db.Column(db.String(20), default='')
    requirement_type = db.Column(db.String(50), nullable=False)
    requirement_value = db.Column(db.Float, nullable=False)
    rarity = db.Column(db.String(20), default='common')
    karma_reward = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=utcnow)

    user_badges = db.relationship('UserBadge', back_populates='badge')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'category': self.category,
            'icon': self.icon,
            'requirement_type': self.requirement_type,
            'requirement_value': self.requirement_value,
            'rarity': self.rarity,
            'karma_reward': self.karma_reward,
        }

    def __repr__(self):
        return f'<Badge {self.id}>'


class UserBadge(db.Model):
    __tablename__ = 'user_badges'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'badge_id', name='uq_user_badge'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False, index=True)
    badge_id = db.Column(db.String(64), db.ForeignKey('badges.id'), nullable=False)
    earned_at = db.Column(db.DateTime, default=utcnow)

    profile = db.relationship('Profile', back_populates='badges')
    badge = db.relationship('Badge', back_populates='user_badges')


class PointsHistory(db.Model):
    __tablename__ = 'points_history'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)  # negative for spending
    reason = db.Column(db.String(200), nullable=False)
    source = db.Column(db.String(50))
    created_at = db.Column(db.DateTime, default=utcnow)

    profile = db.relationship('Profile', back_populates='points_history')

    def to_dict(self):
        return {
            'id': self.id,
            'amount': self.amount,
            'reason': self.reason,
            'source': self.source,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Reward(db.Model):
    __tablename__ = 'rewards'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text)
    cost = db.Column(db.Integer, nullable=False, default=0)
    type = db.Column(db.String(30), nullable=False)
    rarity = db.Column(db.String(20), default='Common')
    is_purchasable = db.Column(db.Boolean, default=True)


class UserReward(db.Model):
    __tablename__ = 'user_rewards'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'reward_id', name='uq_user_reward'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False, index=True)
    reward_id = db.Column(db.Integer, db.ForeignKey('rewards.id'), nullable=False)
    status = db.Column(db.String(20), default='Unlocked')  # Unlocked, Redeemed
    acquired_at = db.Column(db.DateTime, default=utcnow)
    redeemed_at = db.Column(db.DateTime)

    profile = db.relationship('Profile', back_populates='rewards')
    reward = db.relationship('Reward')


class Recommendation(db.Model):
    __tablename__ = 'recommendations'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(20))  # transport, energy, food, waste
    priority = db.Column(db.Integer, default=3)
    potential_impact = db.Column(db.Float, default=0)
    action_type = db.Column(db.String(50))
    status = db.Column(db.String(20), default='active')  # active, completed, dismissed
    created_at = db.Column(db.DateTime, default=utcnow)
    completed_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'category': self.category,
            'priority': self.priority,
            'potential_impact': round(self.potential_impact or 0, 2),
            'action_type': self.action_type,
            'status': self.status,
        }


# --- Community ---

class Post(db.Model):
    __tablename__ = 'posts'
    __table_args__ = (
        db.Index('idx_posts_created', 'created_at'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    author_name = db.Column(db.String(120))
    content = db.Column(db.Text, nullable=False)
    image_url = db.Column(db.String(512))
    image_public_id = db.Column(db.String(255))
    likes_count = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=utcnow)

    author = db.relationship('Profile', back_populates='posts')
    likes = db.relationship('PostLike', back_populates='post', cascade='all, delete-orphan')
    comments = db.relationship('PostComment', back_populates='post', cascade='all, delete-orphan',
                               order_by='PostComment.created_at')

    def to_dict(self, viewer_id=None):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'author_name': self.author_name,
            'content': self.content,
            'image_url': self.image_url,
            'likes_count': self.likes_count or 0,
            'comments_count': len(self.comments),
            'liked': any(like.user_id == viewer_id for like in self.likes) if viewer_id else False,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class PostLike(db.Model):
    __tablename__ = 'post_likes'
    __table_args__ = (
        db.UniqueConstraint('post_id', 'user_id', name='uq_post_like'),
    )

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('posts.id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    post = db.relationship('Post', back_populates='likes')


class PostComment(db.Model):
    __tablename__ = 'post_comments'

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('posts.id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    author_name = db.Column(db.String(120))
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    post = db.relationship('Post', back_populates='comments')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'author_name': self.author_name,
            'content': self.content,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Group(db.Model):
    __tablename__ = 'groups'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(50))
    creator_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    members = db.relationship('GroupMember', back_populates='group', cascade='all, delete-orphan')
    messages = db.relationship('GroupMessage', back_populates='group', cascade='all, delete-orphan')

    def to_dict(self, viewer_id=None):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'category': self.category,
            'creator_id': self.creator_id,
            'member_count': len(self.members),
            'is_member': any(m.user_id == viewer_id for m in self.members) if viewer_id else False,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class GroupMember(db.Model):
    __tablename__ = 'group_members'
    __table_args__ = (
        db.UniqueConstraint('group_id', 'user_id', name='uq_group_member'),
    )

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('groups.id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False, index=True)
    joined_at = db.Column(db.DateTime, default=utcnow)

    group = db.relationship('Group', back_populates='members')
    profile = db.relationship('Profile', back_populates='memberships')


class GroupMessage(db.Model):
    __tablename__ = 'group_messages'
    __table_args__ = (
        db.Index('idx_group_messages_group', 'group_id', 'created_at'),
    )

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('groups.id'), nullable=False)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    author_name = db.Column(db.String(120))
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    group = db.relationship('Group', back_populates='messages')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'author_name': self.author_name,
            'content': self.content,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class CommunityEvent(db.Model):
    __tablename__ = 'community_events'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    date = db.Column(db.DateTime, nullable=False, index=True)
    location = db.Column(db.String(200))
    organizer_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    attendees = db.relationship('EventAttendee', back_populates='event', cascade='all, delete-orphan')

    def to_dict(self, viewer_id=None):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'date': self.date.isoformat() if self.date else None,
            'location': self.location,
            'organizer_id': self.organizer_id,
            'attendee_count': len(self.attendees),
            'attending': any(a.user_id == viewer_id for a in self.attendees) if viewer_id else False,
        }


class EventAttendee(db.Model):
    __tablename__ = 'event_attendees'
    __table_args__ = (
        db.UniqueConstraint('event_id', 'user_id', name='uq_event_attendee'),
    )

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('community_events.id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    event = db.relationship('CommunityEvent', back_populates='attendees')
    profile = db.relationship('Profile')


class SuccessStory(db.Model):
    __tablename__ = 'success_stories'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    author_name = db.Column(db.String(120))
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    co2_saved = db.Column(db.Float, default=0)
    likes_count = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=utcnow)

    likes = db.relationship('StoryLike', back_populates='story', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'author_name': self.author_name,
            'title': self.title,
            'content': self.content,
            'co2_saved': self.co2_saved,
            'likes_count': self.likes_count or 0,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class StoryLike(db.Model):
    __tablename__ = 'story_likes'
    __table_args__ = (
        db.UniqueConstraint('story_id', 'user_id', name='uq_story_like'),
    )

    id = db.Column(db.Integer, primary_key=True)
    story_id = db.Column(db.Integer, db.ForeignKey('success_stories.id'), nullable=False)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)

    story = db.relationship('SuccessStory', back_populates='likes')


class EcoTip(db.Model):
    __tablename__ = 'eco_tips'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(50))
    votes = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'category': self.category,
            'votes': self.votes or 0,
        }


class TipVote(db.Model):
    __tablename__ = 'tip_votes'
    __table_args__ = (
        db.UniqueConstraint('tip_id', 'user_id', name='uq_tip_vote'),
    )

    id = db.Column(db.Integer, primary_key=True)
    tip_id = db.Column(db.Integer, db.ForeignKey('eco_tips.id'), nullable=False)
    user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)


# --- Seed data ---

BADGE_CATALOGUE = [
    dict(id='solar-seedling', name='Solar Seedling', description='Log your very first eco-activity.',
         category='action', icon='\U0001F331', requirement_type='activities_count', requirement_value=1,
         rarity='common', karma_reward=50),
    dict(id='eco-scanner', name='Eco Scanner', description='Scan your first utility bill using AI.',
         category='action', icon='\U0001F4C4', requirement_type='bills_count', requirement_value=1,
         rarity='rare', karma_reward=100),
    dict(id='streak-starter', name='Streak Starter', description='Maintain a consistent 3-day eco-streak.',
         category='streak', icon='\U0001F525', requirement_type='streak_days', requirement_value=3,
         rarity='common', karma_reward=75),
    dict(id='daily-devotee', name='Daily Devotee', description='Reach a 7-day eco-streak.',
         category='streak', icon='\U0001F4C5', requirement_type='streak_days', requirement_value=7,
         rarity='rare', karma_reward=100),
    dict(id='carbon-slasher', name='Carbon Slasher', description='Save a total of 50kg of CO2 emissions.',
         category='carbon', icon='\U0001FA93', requirement_type='carbon_saved', requirement_value=50,
         rarity='epic', karma_reward=200),
    dict(id='carbon-titan', name='Carbon Titan', description='Save 200kg of CO2.',
         category='carbon', icon='⚡', requirement_type='carbon_saved', requirement_value=200,
         rarity='legendary', karma_reward=500),
    dict(id='karma-collector', name='Karma Collector', description='Reach a total balance of 500 Karma Points.',
         category='milestone', icon='\U0001F48E', requirement_type='karma_earned', requirement_value=500,
         rarity='rare', karma_reward=150),
    dict(id='social-butterfly', name='Social Butterfly', description='Join your first community group.',
         category='community', icon='\U0001F98B', requirement_type='teams_joined', requirement_value=1,
         rarity='common', karma_reward=50),
    dict(id='social-leader', name='Social Leader', description='Join 3 community groups.',
         category='community', icon='\U0001F451', requirement_type='teams_joined', requirement_value=3,
         rarity='rare', karma_reward=100),
    dict(id='tree-planter', name='Tree Planter', description='Plant your first virtual tree.',
         category='action', icon='\U0001F333', requirement_type='trees_planted_virtual', requirement_value=1,
         rarity='common', karma_reward=50),
    dict(id='forest-guardian', name='Forest Guardian', description='Plant 10 virtual trees.',
         category='milestone', icon='\U0001F332', requirement_type='trees_planted_virtual', requirement_value=10,
         rarity='rare', karma_reward=150),
    dict(id='quiz-wizard', name='Quiz Wizard', description='Complete 5 quizzes with a perfect score.',
         category='milestone', icon='\U0001F9D9', requirement_type='perfect_quizzes', requirement_value=5,
         rarity='epic', karma_reward=250),
    dict(id='bill-master', name='Bill Master', description='Scan 10 utility bills.',
         category='action', icon='\U0001F4C1', requirement_type='bills_count', requirement_value=10,
         rarity='epic', karma_reward=200),
    dict(id='early-bird', name='Early Bird', description='Log an activity before 7 AM.',
         category='milestone', icon='\U0001F305', requirement_type='early_morning_log', requirement_value=1,
         rarity='common', karma_reward=50),
]


def seed_badges():
    """Seed the badge catalogue if the table is empty."""
    if Badge.query.count() == 0:
        db.session.add_all([Badge(**badge) for badge in BADGE_CATALOGUE])
        db.session.commit()


def seed_rewards():
    """Seed the rewards store if the table is empty."""
    if Reward.query.count() == 0:
        rewards = [
            Reward(title='Green Profile Border', description='A leafy border around your avatar.',
                   cost=150, type='Profile Border', rarity='Common'),
            Reward(title='Streak Revive', description='Restore a broken login streak once.',
                   cost=200, type='Streak Revive', rarity='Rare'),
            Reward(title='Eco Warrior Certificate', description='A printable certificate of your impact.',
                   cost=300, type='Certificate', rarity='Rare'),
            Reward(title='Community Event Pass', description='Priority access to a partner clean-up drive.',
                   cost=400, type='Event Access', rarity='Epic'),
            Reward(title='Plant a Real Tree', description='We plant a sapling with a partner NGO in your name.',
                   cost=500, type='Tree Donation', rarity='Legendary'),
        ]
        db.session.add_all(rewards)
        db.session.commit()


def seed_eco_tips():
    """Seed a handful of eco tips if the table is empty."""
    if EcoTip.query.count() == 0:
        tips = [
            EcoTip(title='Air-dry your laundry', category='energy',
                   content='Air-drying clothes for a week can save up to 2kg of CO2.'),
            EcoTip(title='Meatless Monday', category='food',
                   content='Skipping meat one day a week saves roughly 3kg of carbon.'),
            EcoTip(title='Kill phantom loads', category='energy',
                   content='Unplugging idle electronics can cut your energy footprint by 10%.'),
            EcoTip(title='Wash cold', category='energy',
                   content='Cold-water laundry saves energy and protects your clothes.'),
            EcoTip(title='Bundle deliveries', category='transport',
                   content='Consolidate online orders to reduce delivery emissions.'),
        ]
        db.session.add_all(tips)
        db.session.commit()


def seed_all():
    seed_badges()
    seed_rewards()
    seed_eco_tips()
