from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Profile(Base):
    """Personal details, 1:1 with an identity-provider user id"""

    __tablename__ = "profiles"

    user_id = Column(String(128), primary_key=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    address_line_1 = Column(String(255), nullable=True)
    address_line_2 = Column(String(255), nullable=True)
    town_or_city = Column(String(100), nullable=True)
    county = Column(String(100), nullable=True)
    postcode = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    email_allow_promotional = Column(Boolean, default=False, nullable=False)
    email_allow_informational = Column(Boolean, default=True, nullable=False)
    welcome_email_sent = Column(Boolean, default=False, nullable=False)

    @property
    def full_name(self):
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or None


class Site(Base):
    __tablename__ = "sites"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    address = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    fields = relationship("Field", back_populates="site")


class Field(Base):
    __tablename__ = "fields"

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(Integer, ForeignKey("sites.id"), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    field_type = Column(String(100), nullable=True)
    capacity = Column(Integer, nullable=True)  # pets

    site = relationship("Site", back_populates="fields")


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    default_price = Column(Float, nullable=True)
    requires_field_selection = Column(Boolean, default=False, nullable=False)
    service_type = Column(String(50), default="Daycare", nullable=False)  # Field Hire, Daycare
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    availability_rules = relationship("ServiceAvailability", back_populates="service")


class ServiceAvailability(Base):
    """Recurring (days_of_week) or one-off (specific_date) bookable window for a service"""

    __tablename__ = "service_availability"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)
    field_ids = Column(JSON, nullable=False, default=list)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    days_of_week = Column(JSON, nullable=True)  # ISO weekdays, 1 = Monday
    specific_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    override_price = Column(Float, nullable=True)
    use_staff_vehicle_capacity = Column(Boolean, default=False, nullable=False)
    base_capacity = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    service = relationship("Service", back_populates="availability_rules")


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=True)
    color = Column(String(50), nullable=True)
    license_plate = Column(String(20), nullable=True)
    pet_capacity = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), unique=True, nullable=False, index=True)
    role = Column(String(20), default="staff", nullable=False)  # staff, admin
    notes = Column(Text, nullable=True)
    default_vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=True)

    profile = relationship(
        "Profile",
        primaryjoin="Staff.user_id == foreign(Profile.user_id)",
        uselist=False,
        viewonly=True,
    )
    default_vehicle = relationship("Vehicle")
    availability = relationship(
        "StaffAvailability", back_populates="staff", cascade="all, delete-orphan"
    )


class StaffAvailability(Base):
    """Working hours (is_available) or blackout periods for a staff member"""

    __tablename__ = "staff_availability"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    days_of_week = Column(JSON, nullable=True)  # ISO weekdays, 1 = Monday
    specific_date = Column(Date, nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    staff = relationship("Staff", back_populates="availability")


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), unique=True, nullable=True, index=True)
    email = Column(String(255), unique=True, nullable=True, index=True)
    default_staff_id = Column(Integer, ForeignKey("staff.id", ondelete="SET NULL"), nullable=True)

    profile = relationship(
        "Profile",
        primaryjoin="Client.user_id == foreign(Profile.user_id)",
        uselist=False,
        viewonly=True,
    )
    default_staff = relationship("Staff")
    pets = relationship("Pet", back_populates="client", order_by="Pet.id", passive_deletes="all")


class Pet(Base):
    __tablename__ = "pets"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    breed = Column(String(100), nullable=True)
    size = Column(String(50), nullable=True)
    is_confirmed = Column(Boolean, default=False, nullable=False)

    client = relationship("Client", back_populates="pets")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_field_ids = Column(JSON, nullable=False, default=list)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)
    service_type = Column(String(100), nullable=True)
    status = Column(String(50), default="open", nullable=False)  # open, confirmed, cancelled, completed
    is_paid = Column(Boolean, default=False, nullable=False)
    max_capacity = Column(Integer, nullable=True)
    assigned_staff_id = Column(String(128), nullable=True, index=True)  # staff auth user id
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=True)
    assignment_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    client_links = relationship(
        "BookingClient", back_populates="booking", cascade="all, delete-orphan"
    )
    pet_links = relationship("BookingPet", back_populates="booking", cascade="all, delete-orphan")


class BookingClient(Base):
    __tablename__ = "booking_clients"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)

    booking = relationship("Booking", back_populates="client_links")
    client = relationship("Client")


class BookingPet(Base):
    __tablename__ = "booking_pets"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    pet_id = Column(Integer, ForeignKey("pets.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    booking = relationship("Booking", back_populates="pet_links")
    pet = relationship("Pet")


class PetImage(Base):
    """Photo of a pet taken by staff; the file itself lives in object storage"""

    __tablename__ = "pet_images"

    id = Column(Integer, primary_key=True, index=True)
    pet_id = Column(Integer, ForeignKey("pets.id", ondelete="CASCADE"), nullable=False, index=True)
    uploaded_by_staff_id = Column(
        Integer, ForeignKey("staff.id", ondelete="SET NULL"), nullable=True
    )
    storage_object_path = Column(String(512), nullable=False)
    caption = Column(Text, nullable=True)
    file_name = Column(String(255), nullable=True)
    mime_type = Column(String(100), nullable=True)
    size_bytes = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
