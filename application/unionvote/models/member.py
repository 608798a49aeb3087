from sqlalchemy import Column, String, Boolean
from unionvote.models.common import CommonModel


class Members(CommonModel):
    """Union members; the identity behind a session"""
    __tablename__ = "members"

    id = Column(String(32), primary_key=True)
    phone_number = Column(String(15), nullable=False, unique=True, index=True)
    display_name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="member")
    is_approved = Column(Boolean, nullable=False, default=False)
