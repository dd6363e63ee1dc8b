"""JobScout: scan job boards, score postings against a profile, email a daily digest."""

__version__ = "0.3.0"
