"""Static metadata describing QuizRanking."""

APP_NAME = "QuizRanking"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "QuizRanking scores quiz submissions, keeps each learner's best attempt, "
    "and serves leaderboards and progression statistics over a relational store."
)
