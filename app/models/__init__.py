# Smart Office — Database Models
# Import all models here for SQLAlchemy discovery

from app.models.user import User   # noqa
