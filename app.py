"""
ReLief - Carbon Footprint Tracking API
Flask JSON backend: calculator, bill scanning, gamification and community
"""

from flask import Flask, request, redirect, url_for, session, jsonify, send_file
from flask_wtf.csrf import CSRFProtect, CSRFError, generate_csrf
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from authlib.integrations.flask_client import OAuth
from authlib.integrations.base_client.errors import OAuthError
from functools import wraps
import io
import math
import os
import random
import logging
from datetime import datetime, date, timedelta, timezone as tz
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from dotenv import load_dotenv
from sqlalchemy.exc import IntegrityError

from models import (
    db, Profile, Activity, Bill, Badge, UserBadge, CarbonBudget, Post, Group,
    EcoTip, seed_all
)
from calculator import (
    calculate_daily_log_emissions, calculate_emissions, calculate_savings,
    calculate_footprint, suggested_monthly_budget, calculate_bill_emissions,
    get_average_baseline, get_daily_baseline, get_reduction_tips
)
from profiles import (
    InsufficientPointsError, get_profile, ensure_user_profile, update_user_stats,
    get_points_history, delete_profile
)
from streaks import record_login, get_month_login_dates
from badges import (
    check_and_award_badges, get_user_stats, calculate_badge_progress,
    format_badge_progress, filter_badges, sort_badges
)
from rewards import RewardError, list_rewards, purchase_reward, redeem_reward
import community
from community import CommunityError
from reports import (
    build_summary, get_month_emissions, get_weekly_comparison, get_user_carbon_history,
    aggregate_by_category, budget_alert_threshold, top_percentile
)
from exports import generate_carbon_csv, generate_summary_csv, generate_carbon_pdf
from certificates import render_certificate
from recommendations import generate_recommendations, complete_recommendation, dismiss_recommendation
from bill_scanner import scan_bill, detect_bill_type
from assistant import chat, AssistantError
from gemini_helper import init_gemini
from clerk_client import get_users_batch
from cloudinary_helper import init_cloudinary, upload_avatar, upload_bill_image, upload_post_image
import email_service
from email_service import (
    send_welcome_email, send_bill_processed_email, send_carbon_alert_email,
    send_monthly_report_email, send_aqi_alert_email, send_weekly_digest_email,
    send_event_reminder_email, send_activity_logged_email, send_contact_email, send_batch
)

load_dotenv()

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger('relief')

app = Flask(__name__)

# SECRET_KEY must be set via environment variable in production
_secret_key = os.environ.get('SECRET_KEY')
if not _secret_key:
    if os.environ.get('FLASK_ENV') == 'development' or os.environ.get('FLASK_DEBUG') == '1':
        _secret_key = 'dev-only-insecure-key-do-not-use-in-prod'
        logger.warning('SECRET_KEY not set - using insecure dev key. Set SECRET_KEY for production.')
    else:
        raise RuntimeError('SECRET_KEY environment variable is required. Set it before starting the app.')
app.secret_key = _secret_key

# --- Database Configuration ---
# Support DATABASE_URL (Postgres) or fall back to SQLite for local dev
database_url = os.environ.get('DATABASE_URL')
if database_url:
    # Some hosts hand out postgres:// but SQLAlchemy needs postgresql://
    if database_url.startswith('postgres://'):
        database_url = database_url.replace('postgres://', 'postgresql://', 1)
    app.config['SQLALCHEMY_DATABASE_URI'] = database_url
else:
    DATA_DIR = os.environ.get('DATA_DIR', os.path.dirname(os.path.abspath(__file__)))
    app.config['SQLALCHEMY_DATABASE_URI'] = f'sqlite:///{os.path.join(DATA_DIR, "relief.db")}'

app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
    'pool_pre_ping': True,
}
app.config['RATELIMIT_ENABLED'] = os.environ.get('RATELIMIT_ENABLED', '1') != '0'

# Initialize extensions
db.init_app(app)
migrate = Migrate(app, db)
csrf = CSRFProtect(app)

cloudinary_configured = init_cloudinary()
if not cloudinary_configured:
    logger.warning('Cloudinary not configured - image uploads will be disabled')

init_gemini()

if not email_service.is_configured():
    logger.warning('RESEND_API_KEY not set - emails will be skipped')

# --- Clerk (OpenID Connect) ---
oauth = OAuth(app)
clerk_issuer = os.environ.get('CLERK_ISSUER', '').rstrip('/')
clerk = None
if clerk_issuer:
    clerk = oauth.register(
        name='clerk',
        client_id=os.environ.get('CLERK_CLIENT_ID'),
        client_secret=os.environ.get('CLERK_CLIENT_SECRET'),
        server_metadata_url=f'{clerk_issuer}/.well-known/openid-configuration',
        client_kwargs={
            'scope': 'openid email profile',
        },
    )
else:
    logger.warning('CLERK_ISSUER not set - sign-in is disabled')

limiter = Limiter(
    get_remote_address,
    app=app,
    default_limits=[],
    storage_uri="memory://",
)


# --- Security Headers ---
@app.after_request
def set_security_headers(response):
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'SAMEORIGIN'
    response.headers['X-XSS-Protection'] = '1; mode=block'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    response.headers['Content-Security-Policy'] = (
        "default-src 'self'; "
        "img-src 'self' data: https://res.cloudinary.com https://img.clerk.com; "
        "frame-ancestors 'self'"
    )
    if request.path.startswith('/api/'):
        response.headers['Cache-Control'] = 'no-store'
    return response


# --- Image validation ---
IMAGE_SIGNATURES = {
    b'\x89PNG\r\n\x1a\n': 'png',
    b'\xff\xd8\xff': 'jpg',
    b'GIF87a': 'gif',
    b'GIF89a': 'gif',
    b'RIFF': 'webp',
}

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}
MAX_CONTENT_LENGTH = 5 * 1024 * 1024  # 5MB
app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def validate_image_file(file_storage):
    """Read magic bytes to verify the file is actually an image."""
    header = file_storage.read(12)
    file_storage.seek(0)
    if not header:
        return False
    for signature, fmt in IMAGE_SIGNATURES.items():
        if header.startswith(signature):
            if fmt == 'webp':
                return header[8:12] == b'WEBP'
            return True
    return False


def get_uploaded_image(field):
    """
    The validated image upload in ``field``.

    Returns:
        (file, error): file is None when nothing was uploaded or it was rejected
    """
    upload = request.files.get(field)
    if not upload or not upload.filename:
        return None, None
    if not allowed_file(upload.filename) or not validate_image_file(upload):
        return None, 'Uploaded file is not a valid image.'
    return upload, None


# --- Helper Functions ---

def validate_timezone(tz_name):
    """Return a valid IANA timezone name or 'UTC' as fallback."""
    if not tz_name or not isinstance(tz_name, str):
        return 'UTC'
    try:
        ZoneInfo(tz_name)
        return tz_name
    except (ZoneInfoNotFoundError, KeyError, ValueError):
        return 'UTC'


def get_user_today(tz_name=None):
    """Get today's date in the user's timezone. Falls back to session, then UTC."""
    if not tz_name:
        tz_name = session.get('timezone', 'UTC')
    tz_name = validate_timezone(tz_name)
    now_utc = datetime.now(tz.utc)
    user_now = now_utc.astimezone(ZoneInfo(tz_name))
    return user_now.date()


def error(message, status=400):
    return jsonify({'error': message}), status


def get_json():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            return error('Unauthorized', 401)
        return f(*args, **kwargs)
    return decorated_function


def current_profile():
    """The signed-in user's profile; clears a session whose profile is gone."""
    profile = get_profile(session['user_id'])
    if not profile:
        session.clear()
    return profile


def profile_required(f):
    """login_required that also passes the loaded profile to the view."""
    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        profile = current_profile()
        if not profile:
            return error('Unauthorized', 401)
        return f(profile, *args, **kwargs)
    return decorated_function


def is_admin():
    """Check if current user is an admin. Set ADMIN_EMAILS env var (comma-separated)."""
    admin_emails = os.environ.get('ADMIN_EMAILS', '').lower().split(',')
    email = (session.get('email') or '').lower()
    return bool(email) and email in [e.strip() for e in admin_emails if e.strip()]


def admin_required(f):
    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not is_admin():
            return error('Forbidden', 403)
        return f(*args, **kwargs)
    return decorated_function


def cron_required(f):
    """Scheduled jobs authenticate with 'Authorization: Bearer <CRON_SECRET>'."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        secret = os.environ.get('CRON_SECRET')
        if not secret:
            logger.warning(f'Cron call to {request.path} rejected: CRON_SECRET is not set')
            return error('Unauthorized', 401)
        if request.headers.get('Authorization') != f'Bearer {secret}':
            return error('Unauthorized', 401)
        return f(*args, **kwargs)
    return decorated_function


def get_budget_limit(user_id, default=500):
    budget = db.session.get(CarbonBudget, user_id)
    return budget.monthly_limit if budget else default


def check_budget_alert(profile, before, after):
    """Email the user when a save pushes their month past 80% or 100% of budget."""
    limit = get_budget_limit(profile.id)
    level = budget_alert_threshold(before, after, limit)
    if level and profile.email:
        used = round(after / limit * 100)
        send_carbon_alert_email(profile.email, profile.username, used)
    return level


def _serialize_streak(profile):
    return {
        'current_streak': profile.streak or 0,
        'longest_streak': profile.longest_streak or 0,
    }


def _int_arg(name, default, low=1, high=365):
    try:
        value = int(request.args.get(name, default))
    except (TypeError, ValueError):
        value = default
    return max(low, min(high, value))


def record_progress(user_id, today):
    """Streak update and badge check after a save. Returns (streak, new_badges)."""
    streak = record_login(user_id, today)
    new_badges = streak.pop('new_badges') + check_and_award_badges(user_id).get('new_badges', [])
    return streak, new_badges


# --- Auth Routes ---

@app.route('/auth/login')
def auth_login():
    """Redirect user to Clerk's hosted sign-in."""
    if not clerk:
        return error('Sign-in is not configured', 503)
    tz_name = request.args.get('timezone')
    if tz_name:
        session['timezone'] = validate_timezone(tz_name)
    redirect_uri = url_for('auth_callback', _external=True)
    return clerk.authorize_redirect(redirect_uri)


@app.route('/auth/callback')
def auth_callback():
    """Handle the callback from Clerk after the user signs in."""
    if not clerk:
        return error('Sign-in is not configured', 503)
    try:
        token = clerk.authorize_access_token()
    except OAuthError as e:
        logger.warning(f'Clerk authentication failed: {e}')
        return error('Authentication failed. Please try again.', 401)

    user_info = token.get('userinfo') or {}
    user_id = user_info.get('sub')
    if not user_id:
        return error('Could not retrieve your account information.', 401)

    email = user_info.get('email', '')
    username = (user_info.get('preferred_username') or user_info.get('name')
                or (email.split('@')[0] if email else 'User'))

    profile, created = ensure_user_profile(user_id, email, username, user_info.get('picture'))
    if created and session.get('timezone'):
        profile.timezone = session['timezone']
        db.session.commit()

    session['user_id'] = profile.id
    session['email'] = profile.email
    session['timezone'] = profile.timezone or 'UTC'

    if created:
        logger.info(f'New user signed up: {profile.id}')
        if profile.email:
            send_welcome_email(profile.email, profile.username)

    record_login(profile.id, get_user_today(profile.timezone))
    return redirect(email_service.app_url('/dashboard'))


@app.route('/auth/logout', methods=['POST'])
def auth_logout():
    session.clear()
    return jsonify({'success': True})


@app.route('/api/csrf-token')
def csrf_token():
    return jsonify({'csrf_token': generate_csrf()})


# --- Profile ---

@app.route('/api/me')
@profile_required
def api_me(profile):
    data = profile.to_dict()
    data['is_admin'] = is_admin()
    data['monthly_budget'] = get_budget_limit(profile.id)
    return jsonify(data)


@app.route('/api/profile', methods=['PATCH'])
@limiter.limit("10 per minute")
@profile_required
def update_profile(profile):
    data = get_json()

    if 'username' in data:
        username = (data.get('username') or '').strip()
        if not username or len(username) > 120:
            return error('Username must be between 1 and 120 characters.')
        profile.username = username

    if 'timezone' in data:
        tz_name = validate_timezone(data.get('timezone'))
        profile.timezone = tz_name
        session['timezone'] = tz_name

    db.session.commit()
    return jsonify(profile.to_dict())


@app.route('/api/profile/avatar', methods=['POST'])
@limiter.limit("5 per minute")
@profile_required
def upload_profile_avatar(profile):
    if not cloudinary_configured:
        return error('Image uploads are not available right now.', 503)

    photo, problem = get_uploaded_image('avatar')
    if problem:
        return error(problem)
    if not photo:
        return error('No image uploaded.')

    url = upload_avatar(photo, profile.id)
    if not url:
        return error('Failed to upload image. Please try again.', 502)

    profile.avatar_url = url
    db.session.commit()
    logger.info(f'Avatar updated for {profile.id}')
    return jsonify({'avatar_url': url})


# --- Calculator ---

@app.route('/api/calculator/estimate', methods=['POST'])
@login_required
def calculator_estimate():
    """Preview an estimate without saving it."""
    data = get_json()
    try:
        if data.get('mode') == 'daily':
            result = calculate_daily_log_emissions(data, data.get('diet') or 'omnivore')
            baseline = get_daily_baseline()
        else:
            result = calculate_emissions(data)
            baseline = get_average_baseline()
    except ValueError as e:
        return error(str(e))

    result['baseline'] = baseline
    result['savings'] = calculate_savings(result['total'], baseline)
    result['tips'] = get_reduction_tips(result['breakdown'])
    return jsonify(result)


@app.route('/api/calculator/daily-log', methods=['POST'])
@limiter.limit("10 per minute")
@profile_required
def daily_log(profile):
    """Save today's daily log: one per local day, +20 KP."""
    data = get_json()
    user_id = profile.id
    today = get_user_today(profile.timezone)

    if Activity.query.filter_by(user_id=user_id, type='calculator', log_date=today).first():
        return error('Daily Limit Reached: you have already logged your activity for today.', 409)

    try:
        result = calculate_daily_log_emissions(data, data.get('diet') or 'omnivore')
    except ValueError as e:
        return error(str(e))

    total = result['total']
    savings = calculate_savings(total, get_daily_baseline())
    month_before = get_month_emissions(user_id, today)

    notes = data.get('notes') if isinstance(data.get('notes'), str) else ''
    try:
        db.session.add(Activity(
            user_id=user_id,
            type='calculator',
            category='daily_log',
            description=f'Daily Footprint calculated: {total} {result["unit"]}',
            impact=total,
            details=result,
            notes=notes.strip()[:500] or None,
            log_date=today,
        ))
        db.session.flush()
    except IntegrityError:
        # A concurrent request saved today's log first
        db.session.rollback()
        return error('Daily Limit Reached: you have already logged your activity for today.', 409)
    update_user_stats(user_id, total, 20, savings, reason='Daily Carbon Log', source='Calculator')
    logger.info(f'Daily log saved for {user_id}: {total} kg')

    streak, new_badges = record_progress(user_id, today)

    if profile.email:
        send_activity_logged_email(profile.email, profile.username, 'Daily Footprint & Commute',
                                   f'{total} {result["unit"]}')
    alert = check_budget_alert(profile, month_before, month_before + total)

    return jsonify({
        'success': True,
        'result': result,
        'karma_earned': 20,
        'savings': savings,
        'streak': streak,
        'new_badges': new_badges,
        'budget_alert': alert,
        'tips': get_reduction_tips(result['breakdown']),
    }), 201


@app.route('/api/onboarding', methods=['POST'])
@profile_required
def onboarding(profile):
    data = get_json()
    try:
        footprint = calculate_footprint(data)
    except ValueError as e:
        return error(str(e))

    monthly_budget = suggested_monthly_budget(footprint['daily_total'])
    profile.annual_footprint = round(footprint['daily_total'] * 365, 2)
    profile.onboarding_completed = True

    budget = db.session.get(CarbonBudget, profile.id)
    if budget:
        budget.monthly_limit = monthly_budget
    else:
        db.session.add(CarbonBudget(user_id=profile.id, monthly_limit=monthly_budget))
    db.session.commit()

    footprint['annual_footprint'] = profile.annual_footprint
    footprint['monthly_budget'] = monthly_budget
    return jsonify(footprint)


@app.route('/api/budget', methods=['GET', 'PUT'])
@profile_required
def carbon_budget(profile):
    if request.method == 'PUT':
        try:
            limit = float(get_json().get('monthly_limit'))
        except (TypeError, ValueError):
            return error('monthly_limit must be a number.')
        if not 0 < limit <= 100000:
            return error('monthly_limit must be greater than zero.')

        budget = db.session.get(CarbonBudget, profile.id)
        if budget:
            budget.monthly_limit = limit
        else:
            db.session.add(CarbonBudget(user_id=profile.id, monthly_limit=limit))
        db.session.commit()

    limit = get_budget_limit(profile.id)
    used = get_month_emissions(profile.id, get_user_today(profile.timezone))
    return jsonify({
        'monthly_limit': limit,
        'used': used,
        'percentage': round(used / limit * 100, 1) if limit else 0,
    })


@app.route('/api/activities')
@login_required
def list_activities():
    user_id = session['user_id']
    query = Activity.query.filter_by(user_id=user_id)
    activity_type = request.args.get('type')
    if activity_type:
        query = query.filter_by(type=activity_type)
    activities = query.order_by(Activity.created_at.desc(), Activity.id.desc()).limit(
        _int_arg('limit', 50, high=500)).all()
    return jsonify([a.to_dict() for a in activities])


# --- Bills & AI ---

BILL_BREAKDOWN_CATEGORY = {
    'electricity': 'electricity',
    'lpg': 'electricity',
    'shopping': 'food',
}
MONTHLY_LIMITED_BILLS = ('electricity', 'lpg')


def _float_or_none(value):
    try:
        number = float(value) if value not in (None, '') else None
    except (TypeError, ValueError):
        return None
    return number if number is None or math.isfinite(number) else None


def _bill_date(fields):
    value = fields.get('bill_date') or fields.get('refill_date') or fields.get('purchase_date')
    return str(value)[:20] if value else None


@app.route('/api/ai/scan', methods=['POST'])
@limiter.limit("10 per minute")
@login_required
def ai_scan():
    """Extract bill fields from an uploaded image with Gemini."""
    upload = request.files.get('file')
    if not upload or not upload.filename:
        return error('No file uploaded')
    if not allowed_file(upload.filename) or not validate_image_file(upload):
        return error('Uploaded file is not a valid image.')

    hint = request.form.get('bill_type') or None
    image_bytes = upload.read()
    upload.seek(0)

    result = scan_bill(image_bytes, upload.mimetype or 'image/jpeg', hint)
    if not result['success']:
        return error(result['message'] or 'Failed to process bill', 500)

    fields = result['fields']
    bill_type = detect_bill_type(result['bill_type'], hint, fields)
    try:
        emissions, factor = calculate_bill_emissions(bill_type, fields)
    except ValueError:
        emissions, factor = 0, 0

    image_url = None
    if cloudinary_configured:
        uploaded = upload_bill_image(upload, session['user_id'])
        image_url = uploaded['url'] if uploaded else None

    return jsonify({
        'success': True,
        'bill_type': bill_type,
        'extracted_data': fields,
        'carbon_emissions': emissions,
        'emission_factor': factor,
        'confidence': result['confidence'],
        'image_url': image_url,
        'message': result['message'],
    })


@app.route('/api/bills', methods=['GET', 'POST'])
@profile_required
def bills(profile):
    if request.method == 'GET':
        rows = Bill.query.filter_by(user_id=profile.id).order_by(Bill.created_at.desc()).all()
        return jsonify([b.to_dict() for b in rows])

    data = get_json()
    bill_type = data.get('bill_type') if isinstance(data.get('bill_type'), str) else ''
    bill_type = bill_type.lower()
    fields = data.get('extracted_data') if isinstance(data.get('extracted_data'), dict) else {}
    if not bill_type or bill_type == 'unknown':
        return error('bill_type is required.')

    today = get_user_today(profile.timezone)
    if bill_type in MONTHLY_LIMITED_BILLS:
        already = Activity.query.filter(
            Activity.user_id == profile.id,
            Activity.type == 'bill_upload',
            Activity.category == bill_type,
            Activity.log_date >= today.replace(day=1),
        ).first()
        if already:
            return error(f'Monthly Limit Reached: you have already scanned an {bill_type} bill this month.', 409)

    try:
        emissions, factor = calculate_bill_emissions(bill_type, fields)
    except ValueError as e:
        return error(str(e))

    breakdown = {key: 0 for key in ('travel', 'electricity', 'food', 'waste', 'water')}
    breakdown[BILL_BREAKDOWN_CATEGORY.get(bill_type, 'waste')] = emissions
    month_before = get_month_emissions(profile.id, today)
    savings = calculate_savings(emissions, get_average_baseline())

    bill = Bill(
        user_id=profile.id,
        bill_type=bill_type,
        units_consumed=_float_or_none(fields.get('units_consumed')),
        amount=_float_or_none(fields.get('amount') or fields.get('total_amount')),
        provider=fields.get('provider'),
        bill_date=_bill_date(fields),
        carbon_emissions=emissions,
        emission_factor=factor,
        confidence=_float_or_none(data.get('confidence')),
        image_url=data.get('image_url'),
        extracted_data=fields,
    )
    db.session.add(bill)
    db.session.add(Activity(
        user_id=profile.id,
        type='bill_upload',
        category=bill_type,
        description=f'{bill_type} bill scanned: {emissions} kg CO2',
        impact=emissions,
        details={'total': emissions, 'breakdown': breakdown, 'unit': 'kg CO2'},
        log_date=today,
    ))
    update_user_stats(profile.id, emissions, 30, savings, reason=f'Scanned {bill_type} bill', source='Bill Scan')
    logger.info(f'Bill saved for {profile.id}: {bill_type} {emissions} kg')

    streak, new_badges = record_progress(profile.id, today)

    if profile.email:
        units = fields.get('units_consumed') or fields.get('cylinder_weight') or 1
        send_bill_processed_email(profile.email, profile.username, units, emissions, bill_type)
    alert = check_budget_alert(profile, month_before, month_before + emissions)

    return jsonify({
        'success': True,
        'bill': bill.to_dict(),
        'karma_earned': 30,
        'savings': savings,
        'streak': streak,
        'new_badges': new_badges,
        'budget_alert': alert,
    }), 201


@app.route('/api/ai/chat', methods=['POST'])
@limiter.limit("20 per minute")
@login_required
def ai_chat():
    data = get_json()
    message = data.get('message')
    if not isinstance(message, str) or not message.strip():
        return error('Message is required')
    history = data.get('previousMessages') or data.get('previous_messages') or []
    if not isinstance(history, list):
        history = []

    try:
        reply = chat(message.strip(), [m for m in history if isinstance(m, dict)])
    except AssistantError as e:
        return error(e.message, e.status)
    return jsonify({'reply': reply})


# --- Streaks, Badges, Points ---

@app.route('/api/streak')
@profile_required
def streak(profile):
    today = get_user_today(profile.timezone)
    year = _int_arg('year', today.year, low=2000, high=9999)
    month = _int_arg('month', today.month, low=1, high=12)
    data = _serialize_streak(profile)
    data['year'] = year
    data['month'] = month
    data['login_days'] = sorted(get_month_login_dates(profile.id, year, month))
    return jsonify(data)


@app.route('/api/streak/check-in', methods=['POST'])
@profile_required
def streak_check_in(profile):
    return jsonify(record_login(profile.id, get_user_today(profile.timezone)))


@app.route('/api/badges')
@profile_required
def badges(profile):
    earned = {ub.badge_id: ub.earned_at for ub in UserBadge.query.filter_by(user_id=profile.id)}
    stats = get_user_stats(profile.id, profile, len(earned))

    catalogue = filter_badges(Badge.query.all(), request.args.get('category'), request.args.get('rarity'),
                              request.args.get('search'))
    catalogue = sort_badges(catalogue, request.args.get('sort', 'rarity'))

    items = []
    for badge in catalogue:
        progress = calculate_badge_progress(badge, stats)
        item = badge.to_dict()
        item['earned'] = badge.id in earned
        item['earned_at'] = earned[badge.id].isoformat() if badge.id in earned else None
        item['progress'] = round(progress['percentage'], 1)
        item['progress_text'] = 'Earned!' if item['earned'] else format_badge_progress(progress)
        items.append(item)

    return jsonify({'badges': items, 'earned_count': len(earned), 'total_count': Badge.query.count(),
                    'stats': stats})


@app.route('/api/badges/check', methods=['POST'])
@login_required
def badges_check():
    result = check_and_award_badges(session['user_id'])
    status = 200 if result['success'] else 500
    return jsonify(result), status


@app.route('/api/points/history')
@login_required
def points_history():
    entries = get_points_history(session['user_id'], _int_arg('limit', 50, high=200))
    return jsonify([e.to_dict() for e in entries])


# --- Rewards ---

@app.route('/api/rewards')
@profile_required
def rewards(profile):
    return jsonify(list_rewards(profile))


@app.route('/api/rewards/<int:reward_id>/purchase', methods=['POST'])
@limiter.limit("10 per minute")
@profile_required
def reward_purchase(profile, reward_id):
    try:
        owned = purchase_reward(profile, reward_id)
    except InsufficientPointsError as e:
        db.session.rollback()
        return jsonify({'error': 'Not enough Karma Points', 'balance': e.balance, 'cost': e.cost}), 402
    except RewardError as e:
        db.session.rollback()
        return error(e.message, e.status)

    badge_result = check_and_award_badges(profile.id)
    return jsonify({
        'success': True,
        'reward_id': owned.reward_id,
        'status': owned.status,
        'balance': profile.balance,
        'new_badges': badge_result.get('new_badges', []),
    })


@app.route('/api/rewards/<int:reward_id>/redeem', methods=['POST'])
@login_required
def reward_redeem(reward_id):
    try:
        owned = redeem_reward(session['user_id'], reward_id)
    except RewardError as e:
        return error(e.message, e.status)
    return jsonify({'success': True, 'reward_id': owned.reward_id, 'status': owned.status})


# --- Community ---

@app.errorhandler(CommunityError)
def community_error(e):
    db.session.rollback()
    return error(e.message, e.status)


@app.route('/api/posts', methods=['GET', 'POST'])
@limiter.limit("10 per minute", methods=["POST"])
@profile_required
def posts(profile):
    if request.method == 'GET':
        return jsonify(community.get_feed(profile.id, _int_arg('limit', 50, high=100)))

    data = request.form if request.form else get_json()
    photo, problem = get_uploaded_image('image')
    if problem:
        return error(problem)
    if photo and not cloudinary_configured:
        return error('Image uploads are not available right now.', 503)

    content = community.clean_text(data.get('content'), 'Post', community.MAX_POST_LENGTH)
    image = upload_post_image(photo, profile.id) if photo else None
    if photo and not image:
        return error('Failed to upload image. Please try again.', 502)

    post = community.create_post(profile, content, image)
    check_and_award_badges(profile.id)
    return jsonify(post.to_dict(profile.id)), 201


@app.route('/api/posts/<int:post_id>', methods=['DELETE'])
@login_required
def delete_post(post_id):
    community.delete_post(session['user_id'], post_id)
    return jsonify({'success': True})


@app.route('/api/posts/<int:post_id>/like', methods=['POST'])
@limiter.limit("30 per minute")
@profile_required
def like_post(profile, post_id):
    liked, count = community.toggle_post_like(profile, post_id)
    return jsonify({'liked': liked, 'likes_count': count})


@app.route('/api/posts/<int:post_id>/comments', methods=['GET', 'POST'])
@limiter.limit("10 per minute", methods=["POST"])
@profile_required
def post_comments(profile, post_id):
    if request.method == 'GET':
        return jsonify(community.list_comments(post_id))
    comment = community.add_comment(profile, post_id, get_json().get('content'))
    return jsonify(comment.to_dict()), 201


@app.route('/api/groups', methods=['GET', 'POST'])
@profile_required
def groups(profile):
    if request.method == 'GET':
        return jsonify(community.list_groups(profile.id))
    data = get_json()
    group = community.create_group(profile, data.get('name'), data.get('description'), data.get('category'))
    check_and_award_badges(profile.id)
    return jsonify(group.to_dict(profile.id)), 201


@app.route('/api/groups/<int:group_id>/join', methods=['POST'])
@login_required
def join_group(group_id):
    user_id = session['user_id']
    group = community.join_group(user_id, group_id)
    badge_result = check_and_award_badges(user_id)
    return jsonify({'group': group.to_dict(user_id), 'new_badges': badge_result.get('new_badges', [])})


@app.route('/api/groups/<int:group_id>/leave', methods=['POST'])
@login_required
def leave_group(group_id):
    group = community.leave_group(session['user_id'], group_id)
    return jsonify({'group': group.to_dict(session['user_id'])})


@app.route('/api/groups/<int:group_id>/members')
@login_required
def group_members(group_id):
    return jsonify(community.group_members(group_id))


@app.route('/api/groups/<int:group_id>/messages', methods=['GET', 'POST'])
@limiter.limit("30 per minute", methods=["POST"])
@profile_required
def group_messages(profile, group_id):
    if request.method == 'GET':
        return jsonify(community.group_messages(profile.id, group_id))
    message = community.post_group_message(profile, group_id, get_json().get('content'))
    return jsonify(message.to_dict()), 201


@app.route('/api/events', methods=['GET', 'POST'])
@profile_required
def events(profile):
    if request.method == 'GET':
        return jsonify(community.upcoming_events(profile.id))
    data = get_json()
    event = community.create_event(profile, data.get('title'), data.get('date'), data.get('location'),
                                   data.get('description'))
    return jsonify(event.to_dict(profile.id)), 201


@app.route('/api/events/<int:event_id>/rsvp', methods=['POST'])
@login_required
def event_rsvp(event_id):
    attending, count = community.toggle_rsvp(session['user_id'], event_id)
    return jsonify({'attending': attending, 'attendee_count': count})


@app.route('/api/events/<int:event_id>/attendees')
@login_required
def event_attendees(event_id):
    return jsonify(community.event_attendees(event_id))


@app.route('/api/stories', methods=['GET', 'POST'])
@limiter.limit("10 per minute", methods=["POST"])
@profile_required
def stories(profile):
    if request.method == 'GET':
        return jsonify(community.list_stories())
    data = get_json()
    story = community.create_story(profile, data.get('title'), data.get('content'), data.get('co2_saved'))
    return jsonify(story.to_dict()), 201


@app.route('/api/stories/<int:story_id>/like', methods=['POST'])
@login_required
def like_story(story_id):
    liked, count = community.toggle_story_like(session['user_id'], story_id)
    return jsonify({'liked': liked, 'likes_count': count})


@app.route('/api/tips')
@login_required
def tips():
    return jsonify(community.list_tips())


@app.route('/api/tips/<int:tip_id>/vote', methods=['POST'])
@login_required
def vote_tip(tip_id):
    voted, votes = community.toggle_tip_vote(session['user_id'], tip_id)
    return jsonify({'voted': voted, 'votes': votes})


@app.route('/api/leaderboard')
@login_required
def leaderboard():
    metric = request.args.get('metric', 'balance')
    return jsonify(community.get_leaderboard(metric, _int_arg('limit', 10, high=100)))


# --- Reports & Exports ---

def _export_activities(user_id, today):
    days = request.args.get('days')
    if days:
        start = today - timedelta(days=_int_arg('days', 30, high=3650))
        return get_user_carbon_history(user_id, start, today)
    return (Activity.query.filter_by(user_id=user_id)
            .order_by(Activity.log_date.asc(), Activity.created_at.asc()).all())


@app.route('/api/reports/summary')
@profile_required
def reports_summary(profile):
    return jsonify(build_summary(profile.id, get_user_today(profile.timezone)))


@app.route('/api/export/csv')
@profile_required
def export_csv(profile):
    activities = _export_activities(profile.id, get_user_today(profile.timezone))
    stamp = date.today().isoformat()
    if request.args.get('type') == 'summary':
        body = generate_summary_csv(aggregate_by_category(activities))
        filename = f'carbon-summary-{stamp}.csv'
    else:
        body = generate_carbon_csv(activities)
        filename = f'carbon-history-{stamp}.csv'
    return send_file(io.BytesIO(body.encode('utf-8')), mimetype='text/csv', as_attachment=True,
                     download_name=filename)


@app.route('/api/export/pdf')
@profile_required
def export_pdf(profile):
    activities = _export_activities(profile.id, get_user_today(profile.timezone))
    pdf = generate_carbon_pdf(profile, activities, aggregate_by_category(activities))
    return send_file(io.BytesIO(pdf), mimetype='application/pdf', as_attachment=True,
                     download_name=f'carbon-report-{date.today().isoformat()}.pdf')


@app.route('/api/certificate')
@profile_required
def certificate(profile):
    png = render_certificate(profile.username, profile.carbon_savings or 0, profile.badge_count or 0,
                             issued_on=get_user_today(profile.timezone))
    return send_file(io.BytesIO(png), mimetype='image/png', as_attachment=True,
                     download_name='relief-certificate.png')


@app.route('/api/recommendations')
@login_required
def recommendations():
    return jsonify([r.to_dict() for r in generate_recommendations(session['user_id'])])


@app.route('/api/recommendations/<int:recommendation_id>/<action>', methods=['POST'])
@login_required
def recommendation_action(recommendation_id, action):
    if action == 'complete':
        rec = complete_recommendation(session['user_id'], recommendation_id)
    elif action == 'dismiss':
        rec = dismiss_recommendation(session['user_id'], recommendation_id)
    else:
        return error('Unknown action', 404)
    if not rec:
        return error('Recommendation not found', 404)
    return jsonify(rec.to_dict())


# --- Users, Alerts, Contact ---

@app.route('/api/users/batch', methods=['POST'])
@login_required
def users_batch():
    user_ids = get_json().get('userIds', get_json().get('user_ids'))
    if not isinstance(user_ids, list) or not all(isinstance(i, str) for i in user_ids):
        return error('Invalid request')
    if len(user_ids) > 100:
        return error('Too many user ids (100 max)')
    return jsonify(get_users_batch(user_ids))


@app.route('/api/alerts/aqi', methods=['POST'])
@limiter.limit("5 per minute")
@profile_required
def aqi_alert(profile):
    data = get_json()
    email = data.get('email') or profile.email
    location = (data.get('location') or '').strip()
    try:
        aqi = int(data.get('aqi'))
    except (TypeError, ValueError):
        aqi = None
    if not email or not location or not aqi:
        return error('Missing required parameters')

    if not send_aqi_alert_email(email, data.get('name') or profile.username, location, aqi):
        return error('Failed to send alert', 502)
    return jsonify({'success': True})


@app.route('/api/contact', methods=['POST'])
@limiter.limit("5 per minute")
def contact():
    data = get_json()
    fields = {key: (data.get(key) or '').strip() if isinstance(data.get(key), str) else ''
              for key in ('fullName', 'emailAddress', 'subject', 'message')}
    if not all(fields.values()):
        return error('Missing required fields')
    if len(fields['message']) > 5000:
        return error('Message is too long (5000 character limit).')
    if not email_service.is_configured():
        return error('Email service not configured', 503)

    if not send_contact_email(fields['fullName'], fields['emailAddress'], fields['subject'], fields['message']):
        return error('Failed to send email', 500)
    return jsonify({'success': True})


# --- Cron Jobs ---

FALLBACK_TIPS = [
    'Air-drying your clothes this week can save up to 2kg of CO2!',
    'Try Meatless Monday! Skipping meat one day a week saves roughly 3kg of carbon.',
    'Unplugging phantom electronics can reduce your energy footprint by 10%.',
]


@app.route('/api/cron/carbon-report', methods=['POST'])
@csrf.exempt
@cron_required
def cron_carbon_report():
    """Monthly report: month-to-date emissions against each user's budget."""
    today = datetime.now(tz.utc).date()
    month_name = today.strftime('%B')
    profiles = Profile.query.filter(Profile.email.isnot(None), Profile.email != '').all()

    jobs = []
    for p in profiles:
        emissions = get_month_emissions(p.id, today)
        budget = get_budget_limit(p.id, default=300)
        jobs.append(lambda p=p, e=emissions, b=budget: send_monthly_report_email(
            p.email, p.username or 'Eco Warrior', month_name, e, b))

    sent, failed = send_batch(jobs)
    logger.info(f'Carbon report cron: {sent} sent, {failed} failed')
    return jsonify({'success': True, 'count': len(profiles), 'sent': sent, 'failed': failed})


@app.route('/api/cron/weekly-digest', methods=['POST'])
@csrf.exempt
@cron_required
def cron_weekly_digest():
    today = datetime.now(tz.utc).date()
    profiles = Profile.query.filter(Profile.email.isnot(None), Profile.email != '').all()

    weekly = {p.id: get_weekly_comparison(p.id, today) for p in profiles}
    active_totals = [w['current_week'] for w in weekly.values() if w['current_week'] > 0]
    tips = [t.content for t in EcoTip.query.all()] or FALLBACK_TIPS

    jobs = []
    for p in profiles:
        week = weekly[p.id]
        percentile = top_percentile(week['current_week'], active_totals)
        tip = random.choice(tips)
        jobs.append(lambda p=p, w=week, pct=percentile, t=tip: send_weekly_digest_email(
            p.email, p.username or 'Eco Warrior', w['current_week'], w['previous_week'], pct, t))

    sent, failed = send_batch(jobs)
    logger.info(f'Weekly digest cron: {sent} sent, {failed} failed')
    return jsonify({'success': True, 'message': f'Dispatched weekly digests to {sent} users.',
                    'sent': sent, 'failed': failed})


@app.route('/api/cron/event-reminders', methods=['POST'])
@csrf.exempt
@cron_required
def cron_event_reminders():
    start, end = community.tomorrow_bounds()
    events_tomorrow = community.events_on(start, end)
    if not events_tomorrow:
        return jsonify({'success': True, 'message': 'No events scheduled for tomorrow.', 'sent': 0})

    jobs = []
    for event in events_tomorrow:
        when = event.date.strftime('%b %d, %I:%M %p')
        for attendee in event.attendees:
            p = attendee.profile
            if not p or not p.email:
                continue
            jobs.append(lambda p=p, e=event, w=when: send_event_reminder_email(
                p.email, p.username or 'Eco Warrior', e.title, w, e.location or 'See event page for details'))

    sent, failed = send_batch(jobs)
    logger.info(f'Event reminder cron: {sent} sent, {failed} failed')
    return jsonify({'success': True,
                    'message': f'Dispatched {sent} event reminders for {len(events_tomorrow)} events.',
                    'sent': sent, 'failed': failed})


# --- Admin ---

@app.route('/api/admin/stats')
@admin_required
def admin_stats():
    recent_posts = Post.query.order_by(Post.created_at.desc()).limit(10).all()
    recent_users = Profile.query.order_by(Profile.created_at.desc()).limit(10).all()
    return jsonify({
        'stats': {
            'users': Profile.query.count(),
            'posts': Post.query.count(),
            'groups': Group.query.count(),
            'badges': UserBadge.query.count(),
        },
        'recent_posts': [{
            'id': p.id, 'author_name': p.author_name, 'content': p.content, 'user_id': p.user_id,
            'created_at': p.created_at.isoformat() if p.created_at else None,
        } for p in recent_posts],
        'recent_users': [{
            'id': u.id, 'username': u.username, 'email': u.email, 'balance': u.balance or 0,
            'created_at': u.created_at.isoformat() if u.created_at else None,
        } for u in recent_users],
    })


@app.route('/api/admin/users/<user_id>', methods=['DELETE'])
@admin_required
def admin_delete_user(user_id):
    if not delete_profile(user_id):
        return error('User not found', 404)
    logger.info(f'ADMIN: {session.get("email")} deleted user {user_id}')
    return jsonify({'success': True})


@app.route('/api/admin/posts/<int:post_id>', methods=['PATCH', 'DELETE'])
@admin_required
def admin_post(post_id):
    post = community.get_post(post_id)
    if request.method == 'DELETE':
        community.remove_post(post)
        logger.info(f'ADMIN: {session.get("email")} deleted post {post_id}')
        return jsonify({'success': True})

    content = community.clean_text(get_json().get('content'), 'Post', community.MAX_POST_LENGTH)
    post.content = content
    db.session.commit()
    return jsonify({'success': True})


# --- Error Handlers ---

@app.errorhandler(404)
def not_found(e):
    return error('Not found', 404)


@app.errorhandler(413)
def payload_too_large(e):
    return error('File is too large (5MB limit).', 413)


@app.errorhandler(500)
def internal_server_error(e):
    logger.error(f'Internal server error: {e}')
    return error('Internal server error', 500)


@app.errorhandler(429)
def rate_limit_exceeded(e):
    return error('Too many requests. Please slow down.', 429)


@app.errorhandler(CSRFError)
def csrf_error(e):
    return error(e.description or 'CSRF token missing or invalid.', 400)


# --- Database Initialization ---

def init_app():
    """Initialize the database and seed data."""
    with app.app_context():
        db.create_all()
        seed_all()


# Auto-create tables only in local dev (FLASK_DEBUG=1)
# In production, use Flask-Migrate: flask db upgrade
if os.environ.get('FLASK_DEBUG') == '1':
    init_app()


if __name__ == '__main__':
    app.run(debug=True, port=5000)
