"""Role constants and helpers.

Roles come from the identity service as plain strings.  Keeping the
groupings here makes it easy to audit who may author quizzes and who may
take them.
"""

ROLE_LEARNER = "learner"
ROLE_INSTRUCTOR = "instructor"
ROLE_MANAGER = "manager"
ROLE_ADMIN = "admin"

# Roles allowed to author quizzes and generate lesson AI content.
AUTHOR_ROLES = [ROLE_INSTRUCTOR, ROLE_MANAGER, ROLE_ADMIN]

# Roles that may author for any course, not only their own.
OVERSEER_ROLES = [ROLE_MANAGER, ROLE_ADMIN]


def normalize_role(role: str | None) -> str:
    return (role or "").strip().lower()


def is_learner(role: str | None) -> bool:
    return normalize_role(role) == ROLE_LEARNER


def is_overseer(role: str | None) -> bool:
    return normalize_role(role) in OVERSEER_ROLES
