"""Scheduled weather forecast and air-quality alert mails."""
