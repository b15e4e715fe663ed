"""Global constants for the bracketeer application."""

# Collections
USERS_COLLECTION = "users"
TEAMS_COLLECTION = "teams"
GAMES_COLLECTION = "games"
TOURNAMENTS_COLLECTION = "tournaments"
BRACKETS_COLLECTION = "brackets"
MATCHES_COLLECTION = "matches"
REGISTRATIONS_COLLECTION = "registrations"
DISPUTES_COLLECTION = "disputes"
TRANSACTIONS_COLLECTION = "transactions"
NOTIFICATIONS_COLLECTION = "notifications"

# User roles and statuses
ROLE_USER = "user"
ROLE_MANAGER = "tournament_manager"
ROLE_SUPPORT = "support"
ROLE_ADMIN = "admin"
USER_ROLES = (ROLE_USER, ROLE_MANAGER, ROLE_SUPPORT, ROLE_ADMIN)

USER_ACTIVE = "active"
USER_BANNED = "banned"
USER_PENDING = "pending_verification"
USER_STATUSES = (USER_ACTIVE, USER_BANNED, USER_PENDING)

# Tournament
TOURNAMENT_DRAFT = "draft"
TOURNAMENT_REG_OPEN = "registration_open"
TOURNAMENT_REG_CLOSED = "registration_closed"
TOURNAMENT_ACTIVE = "active"
TOURNAMENT_COMPLETED = "completed"
TOURNAMENT_CANCELED = "canceled"
PUBLIC_TOURNAMENT_STATUSES = (
    TOURNAMENT_REG_OPEN,
    TOURNAMENT_REG_CLOSED,
    TOURNAMENT_ACTIVE,
    TOURNAMENT_COMPLETED,
)
LOCKED_TOURNAMENT_STATUSES = (
    TOURNAMENT_ACTIVE,
    TOURNAMENT_COMPLETED,
    TOURNAMENT_CANCELED,
)
# Fields that cannot change once a tournament is under way
LOCKED_TOURNAMENT_FIELDS = (
    "game",
    "structure",
    "teamSize",
    "maxParticipants",
    "entryFee",
    "prizeStructure",
)
# Fields that cannot change once anyone has registered
REGISTRATION_LOCKED_FIELDS = (
    "game",
    "structure",
    "teamSize",
    "entryFee",
)

SINGLE_ELIMINATION = "single_elimination"
DOUBLE_ELIMINATION = "double_elimination"
ROUND_ROBIN = "round_robin"
SWISS = "swiss"
BATTLE_ROYALE = "battle_royale"
TOURNAMENT_STRUCTURES = (
    SINGLE_ELIMINATION,
    DOUBLE_ELIMINATION,
    ROUND_ROBIN,
    SWISS,
    BATTLE_ROYALE,
)

PRIZE_TYPES = ("wallet_credit", "virtual_item", "physical_item", "other")

# Registration
REG_REGISTERED = "registered"
REG_CHECKED_IN = "checked_in"
REG_PLAYING = "playing"
REG_ELIMINATED = "eliminated"
REG_COMPLETED = "completed"
REG_DISQUALIFIED = "disqualified"

PAYMENT_PAID = "paid"
PAYMENT_REFUNDED = "refunded"
PAYMENT_NOT_APPLICABLE = "not_applicable"

# Match
MATCH_PENDING = "pending"
MATCH_READY = "ready"
MATCH_ACTIVE = "active"
MATCH_COMPLETED = "completed"
MATCH_DISPUTED = "disputed"
MATCH_FORFEITED = "forfeited"
MATCH_CANCELED = "canceled"

PARTICIPANT_USER = "User"
PARTICIPANT_TEAM = "Team"
PARTICIPANT_MODELS = (PARTICIPANT_USER, PARTICIPANT_TEAM)

# Dispute
DISPUTE_OPEN = "open"
DISPUTE_UNDER_REVIEW = "under_review"
DISPUTE_RESOLVED = "resolved"
DISPUTE_CANCELED = "canceled"
DISPUTE_ACTIVE_STATUSES = (DISPUTE_OPEN, DISPUTE_UNDER_REVIEW)

DECISION_AWARD_REPORTER = "award_win_to_reporter"
DECISION_AWARD_OPPONENT = "award_win_to_opponent"
DECISION_CANCEL_MATCH = "cancel_match"
DECISION_RESET_MATCH = "reset_match"
DECISION_WARN_REPORTER = "issue_warning_to_reporter"
DECISION_WARN_OPPONENT = "issue_warning_to_opponent"
DECISION_NO_ACTION = "no_action"
DISPUTE_DECISIONS = (
    DECISION_AWARD_REPORTER,
    DECISION_AWARD_OPPONENT,
    DECISION_CANCEL_MATCH,
    DECISION_RESET_MATCH,
    DECISION_WARN_REPORTER,
    DECISION_WARN_OPPONENT,
    DECISION_NO_ACTION,
)
DISPUTE_REASON_MAX_LENGTH = 500
DISPUTE_EVIDENCE_DESCRIPTION_MAX_LENGTH = 200
DISPUTE_FINAL_COMMENT_MAX_LENGTH = 1000

# Wallet ledger
TX_WALLET_CHARGE = "wallet_charge"
TX_TOURNAMENT_FEE = "tournament_fee"
TX_PAYOUT = "payout"
TX_REFUND = "refund"

TX_PENDING = "pending"
TX_COMPLETED = "completed"
TX_FAILED = "failed"
TX_CANCELED = "canceled"

# Notification templates
NOTIFY_REGISTRATION_CONFIRMED = "REGISTRATION_CONFIRMED"
NOTIFY_MATCH_SCHEDULED = "MATCH_SCHEDULED"
NOTIFY_MATCH_REMINDER = "MATCH_REMINDER"
NOTIFY_DISPUTE_OPENED = "DISPUTE_OPENED"
NOTIFY_DISPUTE_RESOLVED = "DISPUTE_RESOLVED"
NOTIFY_TOURNAMENT_CANCELED = "TOURNAMENT_CANCELED"
NOTIFY_WALLET_CHARGED = "WALLET_CHARGED"

# Ratings
ELO_K_FACTOR = 32
DEFAULT_RATING = 1000

# Pagination
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Redis keys
JOB_LOCK_PREFIX = "job_lock:"
TEAM_CACHE_PREFIX = "team:"
