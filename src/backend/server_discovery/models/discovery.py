"""SQLAlchemy ORM models for the discovery audit trail: DiscoveryResult, OpenPort."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from server_discovery.models.server import Base


class DiscoveryResult(Base):
    """One row per discovery pass, simulated or ingested from a payload."""

    __tablename__ = "discovery_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    server_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("servers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, index=True)
    status: Mapped[str | None] = mapped_column(Text, nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    os_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    os_version: Mapped[str | None] = mapped_column(Text, nullable=True)
    cpu_model: Mapped[str | None] = mapped_column(Text, nullable=True)
    cpu_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    memory_total_gb: Mapped[float | None] = mapped_column(Float, nullable=True)
    disk_total_gb: Mapped[float | None] = mapped_column(Float, nullable=True)
    disk_free_gb: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_boot_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=True
    )

    open_ports: Mapped[list["OpenPort"]] = relationship(
        "OpenPort", back_populates="discovery", cascade="all, delete-orphan", passive_deletes=True
    )


class OpenPort(Base):
    __tablename__ = "open_ports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    discovery_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("discovery_results.id", ondelete="CASCADE"), nullable=False, index=True
    )
    local_port: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    local_ip: Mapped[str | None] = mapped_column(Text, nullable=True)
    remote_port: Mapped[int | None] = mapped_column(Integer, nullable=True)
    remote_ip: Mapped[str | None] = mapped_column(Text, nullable=True)
    state: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    process_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    process_name: Mapped[str | None] = mapped_column(Text, nullable=True)

    discovery: Mapped[DiscoveryResult] = relationship("DiscoveryResult", back_populates="open_ports")
