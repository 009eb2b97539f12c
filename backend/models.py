from sqlalchemy import (
    Boolean,
    String,
    Text,
    DateTime,
    Date,
    CheckConstraint,
    UniqueConstraint,
    Index,
    text,
    ForeignKey,
    Integer,
    or_,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.orm import declarative_base
from typing import Optional, List
import uuid

Base = declarative_base()


LISTING_TYPES = ("product", "service")
LISTING_STATUSES = ("active", "sold", "inactive")
VENDOR_TYPES = ("food", "mall", "student", "other")
VERIFICATION_STATUSES = ("unverified", "requested", "under_review", "verified", "rejected", "suspended")
MATERIAL_TYPES = ("past_question", "handout", "note", "slides", "timetable", "other")
SEMESTERS = ("first", "second", "summer")
ATTEMPT_STATUSES = ("in_progress", "submitted", "abandoned")
RIDER_ZONES = ("Campus", "Male Hostels", "Female Hostels", "Town")


class Admin(Base):
    """
    Users allowed into the moderation screens.
    A row existing for a user id is the whole check.
    """
    __tablename__ = "admins"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), unique=True, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class Vendor(Base):
    """
    Seller / service provider account. Owns zero or more listings.

    Verification lives in two columns: the legacy ``verified`` boolean and
    the newer ``verification_status``. ``is_verified`` reads both.
    """
    __tablename__ = "vendors"
    __table_args__ = (
        CheckConstraint(
            "vendor_type IN ('food', 'mall', 'student', 'other')",
            name="vendors_vendor_type_check",
        ),
        Index("vendors_verification_status_idx", "verification_status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), unique=True, index=True)

    name: Mapped[Optional[str]] = mapped_column(String(120))
    whatsapp: Mapped[Optional[str]] = mapped_column(String(32))
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    location: Mapped[Optional[str]] = mapped_column(String(255))
    vendor_type: Mapped[str] = mapped_column(String(20), default="other", nullable=False)

    # Verification
    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    verification_status: Mapped[str] = mapped_column(String(20), default="unverified", nullable=False)
    verification_requested: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    verification_note: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    listings: Mapped[List["Listing"]] = relationship("Listing", back_populates="vendor")

    @hybrid_property
    def is_verified(self) -> bool:
        return self.verification_status == "verified" or bool(self.verified)

    @is_verified.expression
    def is_verified(cls):
        return or_(cls.verification_status == "verified", cls.verified.is_(True))


class Listing(Base):
    """
    A product or service post in the marketplace
    """
    __tablename__ = "listings"
    __table_args__ = (
        CheckConstraint("listing_type IN ('product', 'service')", name="listings_listing_type_check"),
        CheckConstraint("status IN ('active', 'sold', 'inactive')", name="listings_status_check"),
        Index("listings_status_created_idx", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    vendor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("vendors.id", ondelete="CASCADE")
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    listing_type: Mapped[str] = mapped_column(String(20), default="product", nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)

    # Either a numeric price or a free-text label ("Contact for price")
    price: Mapped[Optional[int]] = mapped_column(Integer)
    price_label: Mapped[Optional[str]] = mapped_column(String(100))
    negotiable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    location: Mapped[Optional[str]] = mapped_column(String(255))
    image_url: Mapped[Optional[str]] = mapped_column(String(500))
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    vendor: Mapped[Optional["Vendor"]] = relationship("Vendor", back_populates="listings")


class StudyCourse(Base):
    __tablename__ = "study_courses"
    __table_args__ = (
        UniqueConstraint("course_code", name="study_courses_course_code_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    faculty: Mapped[str] = mapped_column(String(120), nullable=False)
    department: Mapped[str] = mapped_column(String(120), nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    semester: Mapped[str] = mapped_column(String(10), nullable=False)  # first, second, summer
    course_code: Mapped[str] = mapped_column(String(20), nullable=False)
    course_title: Mapped[Optional[str]] = mapped_column(String(255))

    materials: Mapped[List["StudyMaterial"]] = relationship("StudyMaterial", back_populates="course")


class StudyMaterial(Base):
    """
    Uploaded study document. Only ``approved`` rows are public.
    """
    __tablename__ = "study_materials"
    __table_args__ = (
        CheckConstraint("downloads >= 0", name="study_materials_downloads_check"),
        Index("study_materials_approved_created_idx", "approved", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    course_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("study_courses.id", ondelete="RESTRICT"),
        nullable=False
    )
    uploader_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    file_url: Mapped[Optional[str]] = mapped_column(String(500))
    file_path: Mapped[Optional[str]] = mapped_column(String(500))
    session: Mapped[Optional[str]] = mapped_column(String(20))  # e.g. 2023/2024
    material_type: Mapped[str] = mapped_column(String(20), default="other", nullable=False)

    approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    downloads: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    course: Mapped["StudyCourse"] = relationship("StudyCourse", back_populates="materials")


class QuizSet(Base):
    __tablename__ = "study_quiz_sets"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    course_code: Mapped[Optional[str]] = mapped_column(String(20), index=True)
    level: Mapped[Optional[str]] = mapped_column(String(10))
    time_limit_minutes: Mapped[Optional[int]] = mapped_column(Integer)
    published: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    questions: Mapped[List["QuizQuestion"]] = relationship(
        "QuizQuestion",
        back_populates="quiz_set",
        cascade="all, delete-orphan",
        order_by="QuizQuestion.position"
    )


class QuizQuestion(Base):
    __tablename__ = "study_quiz_questions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    set_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("study_quiz_sets.id", ondelete="CASCADE"),
        nullable=False
    )
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    explanation: Mapped[Optional[str]] = mapped_column(Text)
    position: Mapped[Optional[int]] = mapped_column(Integer)

    quiz_set: Mapped["QuizSet"] = relationship("QuizSet", back_populates="questions")
    options: Mapped[List["QuizOption"]] = relationship(
        "QuizOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuizOption.position"
    )


class QuizOption(Base):
    __tablename__ = "study_quiz_options"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    question_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("study_quiz_questions.id", ondelete="CASCADE"),
        nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    position: Mapped[Optional[int]] = mapped_column(Integer)

    question: Mapped["QuizQuestion"] = relationship("QuizQuestion", back_populates="options")


class PracticeAttempt(Base):
    """
    One user's run through a quiz set
    """
    __tablename__ = "study_practice_attempts"
    __table_args__ = (
        Index("study_practice_attempts_user_created_idx", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    set_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("study_quiz_sets.id", ondelete="CASCADE"),
        nullable=False
    )

    status: Mapped[str] = mapped_column(String(20), default="in_progress", nullable=False)
    started_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    submitted_at: Mapped[Optional[DateTime]] = mapped_column(DateTime(True))
    score: Mapped[Optional[int]] = mapped_column(Integer)
    total_questions: Mapped[Optional[int]] = mapped_column(Integer)
    time_spent_seconds: Mapped[Optional[int]] = mapped_column(Integer)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    quiz_set: Mapped["QuizSet"] = relationship("QuizSet")
    answers: Mapped[List["AttemptAnswer"]] = relationship(
        "AttemptAnswer",
        back_populates="attempt",
        cascade="all, delete-orphan"
    )


class AttemptAnswer(Base):
    __tablename__ = "study_attempt_answers"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="study_attempt_answers_attempt_question_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    attempt_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("study_practice_attempts.id", ondelete="CASCADE"),
        nullable=False
    )
    question_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("study_quiz_questions.id", ondelete="CASCADE"),
        nullable=False
    )
    selected_option_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("study_quiz_options.id", ondelete="SET NULL")
    )

    attempt: Mapped["PracticeAttempt"] = relationship("PracticeAttempt", back_populates="answers")


class StudyQuestion(Base):
    """
    Q&A board question
    """
    __tablename__ = "study_questions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    author_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    author_email: Mapped[Optional[str]] = mapped_column(String(255))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[Optional[str]] = mapped_column(Text)
    course_code: Mapped[Optional[str]] = mapped_column(String(20))
    level: Mapped[Optional[str]] = mapped_column(String(10))
    upvotes_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    answers_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    solved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class StudyAnswer(Base):
    __tablename__ = "study_answers"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    question_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("study_questions.id", ondelete="CASCADE"),
        nullable=False
    )
    author_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    author_email: Mapped[Optional[str]] = mapped_column(String(255))
    body: Mapped[str] = mapped_column(Text, nullable=False)
    is_accepted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class StudyQuestionVote(Base):
    """
    One upvote per user per question; ``StudyQuestion.upvotes_count`` mirrors the row count
    """
    __tablename__ = "study_question_votes"
    __table_args__ = (
        UniqueConstraint("question_id", "voter_id", name="study_question_votes_question_voter_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    question_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("study_questions.id", ondelete="CASCADE"),
        nullable=False
    )
    voter_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class DailyActivity(Base):
    """
    One row per user per day they practiced; used for streaks
    """
    __tablename__ = "study_daily_activity"
    __table_args__ = (
        UniqueConstraint("user_id", "activity_date", name="study_daily_activity_user_date_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    activity_date: Mapped[Date] = mapped_column(Date, nullable=False)
    did_practice: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class Rider(Base):
    """
    Delivery agent in the dispatch directory. Buyers contact riders on
    WhatsApp; nothing about the delivery itself is tracked here.
    """
    __tablename__ = "riders"
    __table_args__ = (
        Index("riders_verified_available_idx", "verified", "is_available"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    whatsapp: Mapped[Optional[str]] = mapped_column(String(32))
    zone: Mapped[Optional[str]] = mapped_column(String(50))
    fee_note: Mapped[Optional[str]] = mapped_column(String(255))

    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
