"""Test-only builders and fakes shared by the sales tests."""
