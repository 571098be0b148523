"""Scoring, ranking and progression constants shared across the core layers."""

ANSWER_OPTION_COUNT: int = 4

# Badge ladder, evaluated top-down.
GOLD_SCORE_THRESHOLD: int = 90
SILVER_SCORE_THRESHOLD: int = 90
BRONZE_SCORE_THRESHOLD: int = 70
GOLD_TIME_RATIO: float = 0.7

PASS_SCORE_THRESHOLD: int = 70

DEFAULT_LEADERBOARD_SIZE: int = 100
MAX_LEADERBOARD_SIZE: int = 100

TREND_WINDOW_SIZE: int = 5
TREND_SIGNIFICANCE_DELTA: float = 5.0

STATS_TOP_SCORES: int = 5
STATS_RECENT_ACTIVITY: int = 5

SCORE_BUCKET_WIDTH: int = 10
DIFFICULT_QUESTION_MIN_ASKED: int = 10
DIFFICULT_QUESTION_SUCCESS_RATE: float = 40.0
