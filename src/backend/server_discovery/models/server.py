"""SQLAlchemy ORM models for the server inventory: Server, ServerDetail, ServerTag."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Integer, Text, func, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

SERVER_STATUSES = ("online", "offline", "error")


class Base(DeclarativeBase):
    pass


class Server(Base):
    __tablename__ = "servers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    hostname: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    ip: Mapped[str] = mapped_column(Text, server_default=text("''"), nullable=False)
    os_type: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    region: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    status: Mapped[str] = mapped_column(
        Text,
        CheckConstraint("status IN ('online', 'offline', 'error')", name="ck_servers_status"),
        server_default=text("'offline'"),
        nullable=False,
    )
    last_checked: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=True
    )

    details: Mapped["ServerDetail"] = relationship(
        "ServerDetail", back_populates="server", uselist=False
    )
    tags: Mapped[list["ServerTag"]] = relationship(
        "ServerTag", back_populates="server", cascade="all, delete-orphan"
    )


class ServerDetail(Base):
    """Hardware profile of a server. One row per server, seeded on first discovery."""

    __tablename__ = "server_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    server_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("servers.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    cpu_model: Mapped[str] = mapped_column(Text, nullable=False)
    cpu_cores: Mapped[int] = mapped_column(Integer, nullable=False)
    memory_total: Mapped[float] = mapped_column(Float, nullable=False)
    disk_total: Mapped[float] = mapped_column(Float, nullable=False)
    os_version: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=True
    )

    server: Mapped[Server] = relationship("Server", back_populates="details")


class ServerTag(Base):
    __tablename__ = "server_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    server_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("servers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tag_name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    tag_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=True
    )

    server: Mapped[Server] = relationship("Server", back_populates="tags")
