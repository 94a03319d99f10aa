"""Webmention receipt, verification and triage."""
