from sqlalchemy import Column, String
from .base import Base


class SchoolDirectoryModel(Base):
    __tablename__ = "school_directory"

    id = Column(String, primary_key=True, index=True)
    school_name = Column(String, unique=True, index=True, nullable=False)
    created_at = Column(String, nullable=False)
