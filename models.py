# models.py
#
# Purpose:
# Plain data records shared by every stage of the scoring pipeline.
#
# Every record is a frozen dataclass. A stage never edits what an earlier
# stage produced; it builds a new record instead (dataclasses.replace is used
# where a record only gains a few fields). Collections inside records are
# tuples, and keyed lookups are frozen into read-only mappings, so a finished
# AnalysisResult can be handed to exporters and caches as a snapshot.
#
# Raw hosting-API data enters through Commit.from_dict(), which is the only
# place that has to cope with missing or malformed fields.

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Optional


UNKNOWN_EMAIL = "unknown@unknown.com"

# Contributor categories
CATEGORY_EXCELLENT = "Excellent"
CATEGORY_GOOD = "Good"
CATEGORY_NEEDS_IMPROVEMENT = "Needs Improvement"

# Anti-pattern types
GIANT_COMMIT = "giant_commit"
TINY_COMMIT = "tiny_commit"
WIP_COMMIT = "wip_commit"
MERGE_COMMIT = "merge_commit"
ANTI_PATTERN_TYPES = (GIANT_COMMIT, TINY_COMMIT, WIP_COMMIT, MERGE_COMMIT)

# Semantic intents reported by the language model (closed set, enum order)
COMMIT_INTENTS = (
    "feature",
    "bugfix",
    "refactor",
    "docs",
    "test",
    "style",
    "chore",
    "performance",
    "security",
)

# AI enhancement states carried on the final result
AI_FULL = "full"
AI_PARTIAL = "partial"
AI_DISABLED = "disabled"

INSIGHT_SEVERITIES = ("info", "warning", "critical")


def _to_int(value):
    """Coerce a raw numeric field into a non-negative int (bad input -> 0)."""
    if isinstance(value, bool):
        return 0
    try:
        n = int(value)
    except (TypeError, ValueError):
        return 0
    return n if n > 0 else 0


def parse_timestamp(value):
    """
    Parse an ISO 8601 timestamp like '2024-01-01T12:34:56Z'.

    datetime objects pass through. Anything missing or unparsable returns
    None so the commit can still be scored.
    """
    if isinstance(value, datetime):
        dt = value
    elif value and isinstance(value, str):
        try:
            # fromisoformat() on older interpreters does not accept "Z"
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    # naive timestamps are taken as UTC so they compare with aware ones
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# ----------------------------
# Commit facts
# ----------------------------
@dataclass(frozen=True)
class Author:
    name: str = "Unknown"
    email: str = UNKNOWN_EMAIL
    username: Optional[str] = None

    @property
    def key(self):
        """Grouping key for contributor rollups (case-insensitive email)."""
        return self.email.lower()


@dataclass(frozen=True)
class CommitStats:
    additions: int = 0
    deletions: int = 0
    total: int = 0
    files_changed: int = 0


@dataclass(frozen=True)
class Commit:
    """One commit as fetched from the hosting API. Never mutated."""

    sha: str
    message: str = ""
    author: Author = field(default_factory=Author)
    timestamp: Optional[datetime] = None
    stats: CommitStats = field(default_factory=CommitStats)
    parent_shas: tuple = ()
    files: tuple = ()  # changed file paths, empty when the client could not supply them

    @property
    def subject(self):
        return self.message.split("\n", 1)[0].strip()

    @property
    def body(self):
        parts = self.message.split("\n", 1)
        return parts[1].strip() if len(parts) > 1 else ""

    @property
    def is_merge(self):
        return len(self.parent_shas) > 1

    @classmethod
    def from_dict(cls, d):
        """
        Build a Commit from a loosely-shaped dict.

        Accepted keys mirror the record fields (files_changed may also be
        spelled filesChanged, parent_shas may be parentShas). Missing stats
        become 0, a missing total is recomputed from additions + deletions,
        and a bad timestamp becomes None.
        """
        d = d or {}
        raw_author = d.get("author") or {}
        author = Author(
            name=str(raw_author.get("name") or "Unknown"),
            email=str(raw_author.get("email") or UNKNOWN_EMAIL),
            username=raw_author.get("username") or None,
        )

        raw_stats = d.get("stats") or {}
        additions = _to_int(raw_stats.get("additions"))
        deletions = _to_int(raw_stats.get("deletions"))
        if raw_stats.get("total") is None:
            total = additions + deletions
        else:
            total = _to_int(raw_stats.get("total"))
        files_changed = _to_int(raw_stats.get("files_changed", raw_stats.get("filesChanged")))

        parents = d.get("parent_shas", d.get("parentShas")) or ()
        files = d.get("files") or ()

        return cls(
            sha=str(d.get("sha") or ""),
            message=str(d.get("message") or ""),
            author=author,
            timestamp=parse_timestamp(d.get("timestamp")),
            stats=CommitStats(additions, deletions, total, files_changed),
            parent_shas=tuple(str(p) for p in parents),
            files=tuple(str(f) for f in files),
        )


@dataclass(frozen=True)
class Repository:
    owner: str
    name: str
    full_name: str = ""
    url: str = ""
    description: Optional[str] = None
    default_branch: str = "main"
    language: Optional[str] = None
    stars: int = 0
    forks: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ----------------------------
# Heuristic scores
# ----------------------------
@dataclass(frozen=True)
class MessageQualityScore:
    convention: int        # 0-40
    length: int            # 0-30
    imperative_mood: int   # 0-30
    total: int             # 0-100
    is_conventional: bool = False
    commit_type: Optional[str] = None


@dataclass(frozen=True)
class SizeScore:
    lines: int    # 0-50
    files: int    # 0-50
    total: int    # 0-100
    is_giant: bool = False
    is_tiny: bool = False


@dataclass(frozen=True)
class CommitScore:
    sha: str
    message_quality: MessageQualityScore
    size_score: SizeScore
    overall: int


# ----------------------------
# Contributors
# ----------------------------
@dataclass(frozen=True)
class ContributorStats:
    total_commits: int = 0
    total_additions: int = 0
    total_deletions: int = 0
    average_commit_size: int = 0
    files_changed: int = 0
    first_commit: Optional[datetime] = None
    last_commit: Optional[datetime] = None
    working_hours: tuple = ()
    preferred_days: tuple = ()   # 0 = Sunday
    velocity: float = 0.0        # commits per day


@dataclass(frozen=True)
class ContributorScore:
    email: str
    average_score: int
    consistency_score: int
    category: str


@dataclass(frozen=True)
class ContributorSummary:
    email: str
    name: str
    username: Optional[str]
    stats: ContributorStats
    score: ContributorScore
    commit_shas: tuple = ()
    ai_average_score: Optional[int] = None
    dominant_intent: Optional[str] = None


# ----------------------------
# Anti-patterns
# ----------------------------
@dataclass(frozen=True)
class AntiPatternRecord:
    type: str
    sha: str
    message: str
    description: str


@dataclass(frozen=True)
class AntiPatternSummary:
    records: tuple = ()
    giant_commits: int = 0
    tiny_commits: int = 0
    wip_commits: int = 0
    merge_commits: int = 0

    @property
    def total(self):
        return len(self.records)


# ----------------------------
# Semantic (AI) layer
# ----------------------------
@dataclass(frozen=True)
class SemanticAnalysis:
    intent: str
    clarity: int
    completeness: int
    technical_quality: int
    summary: str = ""


@dataclass(frozen=True)
class ParseFailure:
    """A provider entry that could not be turned into a SemanticAnalysis."""

    reason: str
    raw: object = None


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other):
        return TokenUsage(
            self.prompt_tokens + other.prompt_tokens,
            self.completion_tokens + other.completion_tokens,
            self.total_tokens + other.total_tokens,
        )


@dataclass(frozen=True)
class BatchResult:
    """What a semantic provider returns for one batch."""

    analyses: dict = field(default_factory=dict)   # sha -> SemanticAnalysis | ParseFailure
    usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass(frozen=True)
class EnhancedCommitScore:
    sha: str
    heuristic_score: int
    clarity_score: int
    completeness_score: int
    size_score: int
    technical_score: int
    overall: int
    semantic_analysis: Optional[SemanticAnalysis] = None

    @property
    def ai_applied(self):
        return self.semantic_analysis is not None


@dataclass(frozen=True)
class AIInsight:
    title: str
    description: str = ""
    impact: str = ""
    recommendation: str = ""
    severity: str = "info"


@dataclass(frozen=True)
class ScoredCommit:
    commit: Commit
    score: CommitScore
    enhanced: Optional[EnhancedCommitScore] = None

    @property
    def sha(self):
        return self.commit.sha

    @property
    def effective_score(self):
        """Enhanced overall when the AI layer ran, heuristic overall otherwise."""
        if self.enhanced is not None:
            return self.enhanced.overall
        return self.score.overall


# ----------------------------
# Temporal analytics
# ----------------------------
@dataclass(frozen=True)
class HourBucket:
    hour: int
    count: int
    average_score: int


@dataclass(frozen=True)
class DayBucket:
    day: int
    day_name: str
    count: int
    average_score: int


@dataclass(frozen=True)
class TemporalPattern:
    is_weekend_committer: bool = False
    is_night_owl: bool = False
    is_early_bird: bool = False
    working_hours_ratio: float = 0.0
    most_active_hour: int = 0
    most_active_day: str = "Sunday"


@dataclass(frozen=True)
class VelocityPoint:
    week: str   # ISO week, e.g. "2024-W07"
    commit_count: int
    lines_changed: int
    average_score: int


@dataclass(frozen=True)
class QualityTimeCorrelation:
    hourly_correlation: float = 0.0
    daily_correlation: float = 0.0
    best_hours: tuple = ()
    worst_hours: tuple = ()
    quality_varies_by_time: bool = False


@dataclass(frozen=True)
class TemporalAnalysis:
    hourly: tuple
    daily: tuple
    patterns: TemporalPattern
    velocity: tuple
    correlation: QualityTimeCorrelation
    heatmap: tuple                         # 7 rows (days) x 24 columns (hours)
    contributor_patterns: dict = field(default_factory=dict)
    flags: tuple = ()

    def __post_init__(self):
        object.__setattr__(self, "contributor_patterns", _frozen_mapping(self.contributor_patterns))


# ----------------------------
# Collaboration analytics
# ----------------------------
@dataclass(frozen=True)
class AreaOwnership:
    area: str
    primary_owner: str
    ownership_percent: int
    total_commits: int
    contributors: tuple = ()   # (email, percent) pairs, largest share first
    last_modified: Optional[datetime] = None


@dataclass(frozen=True)
class BusFactorAnalysis:
    bus_factor: int
    risk_level: str
    critical_areas: tuple = ()
    recommendation: str = ""


@dataclass(frozen=True)
class KnowledgeSilo:
    email: str
    name: str
    exclusive_areas: tuple
    risk_level: str
    recommendation: str = ""


@dataclass(frozen=True)
class CollaborationPattern:
    type: str
    description: str
    score: int


@dataclass(frozen=True)
class ReviewPattern:
    has_merge_commits: bool = False
    merge_commit_ratio: float = 0.0
    average_hours_between_merges: int = 0
    top_mergers: tuple = ()   # (name, count) pairs


@dataclass(frozen=True)
class CollaborationMetrics:
    ownership: tuple
    bus_factor: BusFactorAnalysis
    knowledge_silos: tuple
    pattern: CollaborationPattern
    review: ReviewPattern
    insights: tuple = ()


# ----------------------------
# Final result
# ----------------------------
@dataclass(frozen=True)
class Recommendation:
    id: str
    priority: str
    category: str
    title: str
    description: str
    action_items: tuple = ()


@dataclass(frozen=True)
class AnalysisResult:
    repository: Optional[Repository]
    commits: tuple
    contributors: tuple
    anti_patterns: AntiPatternSummary
    temporal: TemporalAnalysis
    collaboration: CollaborationMetrics
    recommendations: tuple
    summary: dict
    repository_score: int
    heuristic_score: int
    ai_repository_score: Optional[int] = None
    ai_status: str = AI_DISABLED
    ai_coverage: float = 0.0
    token_usage: TokenUsage = field(default_factory=TokenUsage)
    ai_insights: tuple = ()

    def __post_init__(self):
        object.__setattr__(self, "summary", _frozen_mapping(self.summary))

    def to_dict(self):
        """JSON-friendly snapshot (datetimes become ISO strings)."""
        return _jsonable(self)


def _frozen_mapping(d):
    return MappingProxyType(dict(d or {}))


def _jsonable(obj):
    if isinstance(obj, datetime):
        return obj.isoformat()
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _jsonable(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Mapping):
        return {str(k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    return obj
