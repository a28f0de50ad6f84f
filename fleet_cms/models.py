from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

try:
    from .utils import isoformat, utc_now_naive
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from utils import isoformat, utc_now_naive

db = SQLAlchemy()

# Singleton rows (stats, site settings) always live under this primary key.
SINGLETON_ID = 1

VEHICLE_CLASS_STANDARD = 'standard'
VEHICLE_CLASS_COMFORT = 'comfort'
VEHICLE_CLASS_BUSINESS = 'business'
VEHICLE_CLASS_VIP = 'vip'
VEHICLE_CLASS_MINIVAN = 'minivan'
VEHICLE_CLASSES = (
    VEHICLE_CLASS_STANDARD,
    VEHICLE_CLASS_COMFORT,
    VEHICLE_CLASS_BUSINESS,
    VEHICLE_CLASS_VIP,
    VEHICLE_CLASS_MINIVAN,
)

BENEFIT_ICONS = (
    'Shield',
    'Clock',
    'Truck',
    'CreditCard',
    'ThumbsUp',
    'Headphones',
    'User',
    'Map',
    'Star',
    'Award',
    'Heart',
    'Wifi',
    'Coffee',
    'Zap',
    'Phone',
)

DEFAULT_BENEFIT_STATS = {
    'clients': '5000+',
    'directions': '15+',
    'experience': '10+',
    'support': '24/7',
}


def normalize_vehicle_class(value):
    candidate = (value or '').strip().lower()
    if candidate in VEHICLE_CLASSES:
        return candidate
    return None


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now_naive)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {'id': self.id, 'username': self.username, 'email': self.email}


class BlogPost(db.Model):
    __tablename__ = 'blog_post'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    slug = db.Column(db.String(60), nullable=False, index=True)  # not unique, computed once on create
    content = db.Column(db.Text, nullable=False)
    excerpt = db.Column(db.Text, nullable=False, default='')
    image_url = db.Column(db.String(500))
    is_published = db.Column(db.Boolean, nullable=False, default=False, index=True)
    published_at = db.Column(db.DateTime, index=True)
    created_at = db.Column(db.DateTime, default=utc_now_naive, index=True)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'content': self.content,
            'excerpt': self.excerpt,
            'imageUrl': self.image_url,
            'isPublished': bool(self.is_published),
            'publishedAt': isoformat(self.published_at),
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }


class Review(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    customer_name = db.Column(db.String(200), nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=False)
    image_url = db.Column(db.String(500))
    is_published = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, default=utc_now_naive)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    def to_dict(self):
        return {
            'id': self.id,
            'customerName': self.customer_name,
            'rating': self.rating,
            'comment': self.comment,
            'imageUrl': self.image_url,
            'isPublished': bool(self.is_published),
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }


class Vehicle(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    vehicle_class = db.Column('class', db.String(20), nullable=False, index=True)
    brand = db.Column(db.String(120), nullable=False)
    model = db.Column(db.String(120), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    seats = db.Column(db.Integer, nullable=False)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(500))
    amenities = db.Column(db.Text)  # comma-separated: "wifi,water,child seat"
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, default=utc_now_naive)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    def to_dict(self):
        return {
            'id': self.id,
            'class': self.vehicle_class,
            'brand': self.brand,
            'model': self.model,
            'year': self.year,
            'seats': self.seats,
            'description': self.description,
            'imageUrl': self.image_url,
            'amenities': self.amenities,
            'isActive': bool(self.is_active),
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }


class Benefit(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    icon = db.Column(db.String(40), nullable=False, default='Shield')
    # Uniqueness is kept by the service; a DB constraint would reject in-transaction swaps.
    sort_order = db.Column('order', db.Integer, nullable=False, default=1, index=True)
    created_at = db.Column(db.DateTime, default=utc_now_naive)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'icon': self.icon,
            'order': self.sort_order,
        }


class BenefitStats(db.Model):
    __tablename__ = 'benefit_stats'

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    clients = db.Column(db.String(40), nullable=False, default=DEFAULT_BENEFIT_STATS['clients'])
    directions = db.Column(db.String(40), nullable=False, default=DEFAULT_BENEFIT_STATS['directions'])
    experience = db.Column(db.String(40), nullable=False, default=DEFAULT_BENEFIT_STATS['experience'])
    support = db.Column(db.String(40), nullable=False, default=DEFAULT_BENEFIT_STATS['support'])
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    def to_dict(self):
        return {
            'clients': self.clients,
            'directions': self.directions,
            'experience': self.experience,
            'support': self.support,
        }


class SiteSettings(db.Model):
    __tablename__ = 'site_settings'

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    phone = db.Column(db.String(80), nullable=False, default='')
    email = db.Column(db.String(200), nullable=False, default='')
    address = db.Column(db.String(400), nullable=False, default='')
    working_hours = db.Column(db.String(200), nullable=False, default='')
    company_name = db.Column(db.String(200), nullable=False, default='')
    company_desc = db.Column(db.Text, nullable=False, default='')
    instagram_link = db.Column(db.String(300), nullable=False, default='')
    telegram_link = db.Column(db.String(300), nullable=False, default='')
    whatsapp_link = db.Column(db.String(300), nullable=False, default='')
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    def to_dict(self):
        return {
            'phone': self.phone,
            'email': self.email,
            'address': self.address,
            'workingHours': self.working_hours,
            'companyName': self.company_name,
            'companyDesc': self.company_desc,
            'instagramLink': self.instagram_link,
            'telegramLink': self.telegram_link,
            'whatsappLink': self.whatsapp_link,
            'updatedAt': isoformat(self.updated_at),
        }
