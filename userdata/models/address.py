"""Address model definitions."""

from sqlalchemy import Column, Integer, String
from userdata.database import Base


class Address(Base):
    """Postal address referenced by exactly one user."""
    __tablename__ = "address"

    id = Column(Integer, primary_key=True)
    street = Column(String, default="", server_default="")
    city = Column(String, default="", server_default="")
    province = Column(String, default="", server_default="")

    def __repr__(self):
        return f"<Address(id={self.id}, street='{self.street}', city='{self.city}', province='{self.province}')>"
