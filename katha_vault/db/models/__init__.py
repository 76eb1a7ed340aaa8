"""ORM models aggregate exports (content + accounts)."""
from .content import (  # noqa: F401
	Base,
	Story,
	Chapter,
	UserRating,
	Comment,
	LibraryEntry,
	STORY_STATUSES,
	PUBLIC_STORY_STATUSES,
	ENTITY_STORY,
	ENTITY_CHAPTER,
	ENTITY_TYPES,
	utcnow,
	new_id,
)
from .accounts import (  # noqa: F401
	UserProfile,
	UserSettings,
	SiteSettings,
)

__all__ = [
	"Base",
	"Story",
	"Chapter",
	"UserRating",
	"Comment",
	"LibraryEntry",
	"UserProfile",
	"UserSettings",
	"SiteSettings",
	"STORY_STATUSES",
	"PUBLIC_STORY_STATUSES",
	"ENTITY_STORY",
	"ENTITY_CHAPTER",
	"ENTITY_TYPES",
	"utcnow",
	"new_id",
]
