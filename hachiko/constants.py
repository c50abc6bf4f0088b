# Entrius 2025
# =============================================================================
# GitHub API
# =============================================================================
BASE_GITHUB_API_URL = "https://api.github.com"
PR_PAGE_SIZE = 100  # listPullRequests only ever looks at the first page
COMMIT_SCAN_LIMIT = 10  # commits inspected per PR when looking for tracking tokens

# =============================================================================
# Hachiko PR Conventions
# =============================================================================
HACHIKO_BRANCH_PREFIX = "hachiko/"
LEGACY_BRANCH_PREFIX = "hachi/"
HACHIKO_LABEL = "hachiko:migration"
TRACKING_TOKEN_PREFIX = "hachiko-track:"
MIN_IDENTIFICATION_METHODS = 2

# Trailing branch segments treated as description rather than part of the migration id.
# NOTE: an id whose own last segment is in this list (e.g. "upgrade-v2") gets truncated.
DESCRIPTIVE_SUFFIX_WORDS = frozenset(
    [
        "impl",
        "implementation",
        "fix",
        "update",
        "refactor",
        "feature",
        "utility",
        "functions",
        "components",
        "hooks",
        "tests",
        "simple",
        "complex",
        "basic",
        "advanced",
        "step",
        "cleanup",
        "final",
        "devin",
        "cursor",
        "v2",
        "v3",
        "1",
        "2",
        "3",
        "4",
        "5",
        "6",
        "7",
        "8",
        "9",
    ]
)

# =============================================================================
# Migration Documents
# =============================================================================
DEFAULT_REF = "main"
DEFAULT_MIGRATIONS_DIR = "migrations"
DEFAULT_STEP = 1
