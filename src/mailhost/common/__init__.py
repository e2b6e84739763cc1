"""Shared configuration and exceptions for mailhost."""
