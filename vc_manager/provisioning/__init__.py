"""Tenant master provisioning."""
