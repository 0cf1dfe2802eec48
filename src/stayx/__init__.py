"""StayX social networking API."""
