from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from roadbook.database import Base


class RouteRecord(Base):
    __tablename__ = "route_records"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False)
    last_modified = Column(DateTime(timezone=True), nullable=False, index=True)
    difficulty = Column(String(32), nullable=False)
    best_season = Column(String(32), nullable=False)
    category = Column(String(32), nullable=False)
    distance_km = Column(Float, nullable=False, default=0.0)
    estimated_duration = Column(Float, nullable=False, default=0.0)
    elevation_gain = Column(Float, nullable=True)
    personal_rating = Column(Integer, nullable=False, default=0)
    personal_notes = Column(Text, nullable=False, default="")
    times_completed = Column(Integer, nullable=False, default=0)
    last_completed = Column(DateTime(timezone=True), nullable=True)
    route_points = Column(Text, nullable=False, default="[]")  # coordinate codec JSON
    waypoints = Column(Text, nullable=False, default="[]")  # coordinate codec JSON
    is_shared = Column(Boolean, nullable=False, default=False, index=True)
    share_id = Column(String(64), nullable=True, unique=True)
    share_url = Column(String(512), nullable=True)

    # selectin so children load eagerly; async sessions can't lazy-load
    photos = relationship(
        "PhotoRecord",
        back_populates="route",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PhotoRecord.order_index",
    )
    landmarks = relationship(
        "LandmarkRecord",
        back_populates="route",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class PhotoRecord(Base):
    __tablename__ = "photo_records"

    id = Column(String(64), primary_key=True)
    route_id = Column(String(64), ForeignKey("route_records.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    caption = Column(Text, nullable=False, default="")
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    captured_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    is_key_photo = Column(Boolean, nullable=False, default=False)
    order_index = Column(Integer, nullable=False, default=0)

    route = relationship("RouteRecord", back_populates="photos")


class LandmarkRecord(Base):
    __tablename__ = "landmark_records"

    id = Column(String(64), primary_key=True)
    route_id = Column(String(64), ForeignKey("route_records.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    landmark_type = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    route = relationship("RouteRecord", back_populates="landmarks")
