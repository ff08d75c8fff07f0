"""User model definitions."""

import enum

from sqlalchemy import Column, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from userdata.database import Base


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    USER = "USER"
    GUEST = "GUEST"


class User(Base):
    """Represents an application user and the address it owns."""
    __tablename__ = "users"
    __table_args__ = (Index("email_index", "email", unique=True),)

    id = Column(Integer, primary_key=True)
    email = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    address_id = Column(Integer, ForeignKey("address.id"), nullable=False)
    role = Column(
        Enum(UserRole, native_enum=False, length=5, values_callable=lambda roles: [role.value for role in roles]),
        default=UserRole.USER,
        nullable=False,
    )

    address = relationship("Address", lazy="joined")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
