from sqlalchemy import Column, Float, ForeignKey, Index, Integer, Text, text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata

ACTIVE_STATUS_CLAUSE = "status IN ('pending', 'confirmed')"


class Providers(Base):
    __tablename__ = 'providers'

    display_name = Column(Text, nullable=False)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    availability = Column(Text, nullable=False, server_default=text("'{}'"))
    id = Column(Integer, primary_key=True)
    description = Column(Text)
    category = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    bookings = relationship('Bookings', back_populates='provider')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        Index('ix_bookings_provider_date', 'provider_id', 'scheduled_date'),
        # At most one active booking per provider slot
        Index(
            'uq_bookings_active_slot',
            'provider_id', 'scheduled_date', 'scheduled_time',
            unique=True,
            sqlite_where=text(ACTIVE_STATUS_CLAUSE),
            postgresql_where=text(ACTIVE_STATUS_CLAUSE),
        ),
    )

    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False)
    customer_id = Column(Text, nullable=False)
    scheduled_date = Column(Text, nullable=False)
    scheduled_time = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    id = Column(Integer, primary_key=True)
    service_name = Column(Text)
    notes = Column(Text)
    price = Column(Float)
    extra = Column(Text)
    decline_reason = Column(Text)

    provider = relationship('Providers', back_populates='bookings')
