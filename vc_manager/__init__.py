"""Tenant master provisioning for virtual clusters."""
