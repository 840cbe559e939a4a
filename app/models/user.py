# app/models/user.py
"""
Users table — dashboard accounts for the JWT sign-in flow.
Only the bcrypt hash of the password is stored.
"""

from sqlalchemy import Column, Integer, String, DateTime
from app.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(128), nullable=False)
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<User {self.id} email={self.email}>"
