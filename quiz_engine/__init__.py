"""Quiz-taking engine for the e-learning platform."""
