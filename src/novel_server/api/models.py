"""
Pydantic models for API requests and responses.

Pydantic models provide:
- Automatic request/response validation
- Type checking and conversion
- Clear API documentation via FastAPI's automatic OpenAPI schema generation

Models are organized into two categories:
1. Request models: Data sent FROM the client TO the server
2. Response models: Data sent FROM the server TO the client

Coin amounts are ``Decimal`` internally and serialized as JSON numbers.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, Field, PlainSerializer

Coins = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

UserRole = Literal["visitor", "reader", "author", "admin"]
NovelStatus = Literal["draft", "ongoing", "completed", "hiatus"]
ChapterStatus = Literal["draft", "published", "locked"]
TransactionType = Literal["purchase_coins", "unlock_chapter", "author_earning"]

EMAIL_REGEX = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# ============================================================================
# REQUEST MODELS (Client → Server)
# ============================================================================


class CreateUserRequest(BaseModel):
    """
    Registration request for a new account.

    Attributes:
        username: 3-50 characters, unique
        email: Unique email address
        password: Plain text password (minimum 8 characters, stored as bcrypt hash)
        role: Requested role; only admins may create admin accounts
    """

    username: str = Field(min_length=3, max_length=50)
    email: str = Field(pattern=EMAIL_REGEX)
    password: str = Field(min_length=8)
    role: UserRole = "reader"


class UpdateUserRequest(BaseModel):
    """
    Partial profile patch. Omitted fields are left unchanged.

    ``role`` and ``is_active`` may only be changed by admins.
    """

    username: str | None = Field(default=None, min_length=3, max_length=50)
    email: str | None = Field(default=None, pattern=EMAIL_REGEX)
    avatar_url: str | None = None
    bio: str | None = None
    role: UserRole | None = None
    is_active: bool | None = None
    two_factor_enabled: bool | None = None


class VerifyCredentialsRequest(BaseModel):
    """Username/password pair checked on behalf of the authenticating gateway."""

    username: str
    password: str


class CreateNovelRequest(BaseModel):
    """
    Request to create a novel owned by the caller.

    Attributes:
        title: 1-200 characters
        description: At least 10 characters
        cover_url: Optional cover image URL
        genre: Free-form genre label used by catalog filters
        tags: Ordered list of tags
    """

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=10)
    cover_url: str | None = None
    genre: str
    tags: list[str] = Field(default_factory=list)


class UpdateNovelRequest(BaseModel):
    """Partial novel patch. Any status may be set at any time."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=10)
    cover_url: str | None = None
    status: NovelStatus | None = None
    genre: str | None = None
    tags: list[str] | None = None
    is_featured: bool | None = None


class CreateChapterRequest(BaseModel):
    """
    Request to append a chapter to a novel.

    ``chapter_number`` and ``word_count`` are derived server-side.

    Attributes:
        title: 1-200 characters
        content: Chapter text (may be empty; empty content counts 0 words)
        coin_cost: Unlock price in coins (>= 0)
        is_free: Free chapters never require an unlock
    """

    title: str = Field(min_length=1, max_length=200)
    content: str = ""
    coin_cost: Decimal = Field(default=Decimal("0"), ge=0)
    is_free: bool = True


class UpdateChapterRequest(BaseModel):
    """Partial chapter patch; content changes recompute ``word_count``."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = None
    status: ChapterStatus | None = None
    coin_cost: Decimal | None = Field(default=None, ge=0)
    is_free: bool | None = None


class CreateReviewRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    review_text: str | None = None


class CreateCommentRequest(BaseModel):
    """
    Comment or reply on a chapter.

    Attributes:
        content: Non-empty comment text
        parent_id: Comment being replied to (same chapter only)
    """

    content: str = Field(min_length=1)
    parent_id: int | None = None


class ModerateCommentRequest(BaseModel):
    is_approved: bool


class PurchaseCoinsRequest(BaseModel):
    """
    Coin purchase for the caller.

    Attributes:
        amount: Coins to credit (> 0, rounded to 0.01)
        description: Free-form note stored on the ledger row
    """

    amount: Decimal = Field(gt=0)
    description: str = "Coin purchase"


class UnlockChapterRequest(BaseModel):
    """
    Optional unlock body.

    Attributes:
        coin_cost: Price to charge; omitted means the chapter's own price.
            Must not be lower than that price.
    """

    coin_cost: Decimal | None = Field(default=None, ge=0)


class AuthorEarningRequest(BaseModel):
    """Admin-issued author payout recorded as an ``author_earning`` row."""

    author_id: int
    amount: Decimal = Field(gt=0)
    description: str = "Author payout"
    novel_id: int | None = None
    chapter_id: int | None = None


class ReadingProgressRequest(BaseModel):
    novel_id: int
    chapter_id: int


# ============================================================================
# RESPONSE MODELS (Server → Client)
# ============================================================================


class UserResponse(BaseModel):
    """
    Public account view. The password hash is never returned.
    """

    id: int
    username: str
    email: str
    role: UserRole
    avatar_url: str | None = None
    bio: str | None = None
    coins_balance: Coins
    is_active: bool
    is_email_verified: bool
    two_factor_enabled: bool
    created_at: datetime
    updated_at: datetime


class NovelResponse(BaseModel):
    """
    Novel with its derived counters.

    Attributes:
        total_chapters: Number of chapters in the novel
        total_views: Sum of successful chapter reads
        average_rating: Mean review rating rounded to two decimals (0 when unrated)
    """

    id: int
    title: str
    description: str
    cover_url: str | None = None
    author_id: int
    status: NovelStatus
    genre: str
    tags: list[str]
    total_chapters: int
    total_views: int
    total_likes: int
    average_rating: float
    is_featured: bool
    created_at: datetime
    updated_at: datetime


class ChapterSummaryResponse(BaseModel):
    """Chapter listing row (content omitted)."""

    id: int
    novel_id: int
    chapter_number: int
    title: str
    status: ChapterStatus
    coin_cost: Coins
    word_count: int
    views: int
    is_free: bool
    created_at: datetime
    updated_at: datetime


class ChapterResponse(ChapterSummaryResponse):
    content: str


class TransactionResponse(BaseModel):
    """
    One ledger row.

    Attributes:
        amount: Signed amount (positive for purchases and earnings,
            negative for unlocks)
        novel_id: Novel the row relates to, when any
        chapter_id: Chapter the row relates to, when any
    """

    id: int
    user_id: int
    type: TransactionType
    amount: Coins
    description: str | None = None
    novel_id: int | None = None
    chapter_id: int | None = None
    created_at: datetime


class BalanceResponse(BaseModel):
    user_id: int
    coins_balance: Coins


class BalanceAuditResponse(BaseModel):
    """Stored balance versus the sum of the user's ledger rows."""

    user_id: int
    balance: Coins
    ledger_total: Coins
    consistent: bool


class ReviewResponse(BaseModel):
    id: int
    novel_id: int
    user_id: int
    rating: int
    review_text: str | None = None
    created_at: datetime
    updated_at: datetime


class CommentResponse(BaseModel):
    """
    Chapter comment.

    Attributes:
        parent_id: Comment this one replies to, or None for top-level
        depth: 1 for top-level comments, 2 for replies
        is_moderated: Set by an admin
        moderated_by: Admin who last changed ``is_moderated``
        moderated_at: When ``is_moderated`` last changed
    """

    id: int
    chapter_id: int
    user_id: int
    content: str
    parent_id: int | None = None
    depth: int
    is_moderated: bool
    moderated_by: int | None = None
    moderated_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ReadingProgressResponse(BaseModel):
    id: int
    user_id: int
    novel_id: int
    last_chapter_id: int | None = None
    last_read_at: datetime
    is_favorite: bool
    created_at: datetime
    updated_at: datetime


class DashboardStatsResponse(BaseModel):
    """
    Admin dashboard rollup.

    Attributes:
        total_revenue: Sum of all coin purchases
        active_users_today: Distinct users with a ledger row since local midnight
        new_users_today: Accounts created since local midnight
        popular_novels: Up to 10 novels by total views
        recent_transactions: Up to 10 most recent ledger rows
    """

    total_users: int
    total_novels: int
    total_chapters: int
    total_revenue: Coins
    active_users_today: int
    new_users_today: int
    popular_novels: list[NovelResponse]
    recent_transactions: list[TransactionResponse]


class AuthorStatsResponse(BaseModel):
    """
    Author dashboard rollup.

    Attributes:
        novels: The author's novels, newest first
        total_views: Sum of ``total_views`` over the author's novels
        total_earnings: Sum of the author's ``author_earning`` rows
        recent_earnings: Up to 10 most recent earning rows
    """

    novels: list[NovelResponse]
    total_views: int
    total_earnings: Coins
    recent_earnings: list[TransactionResponse]
