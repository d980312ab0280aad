"""Fare radar: periodic multi-site flight price checks with budget alerts."""
