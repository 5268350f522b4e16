"""Attestation core: retry, resource ensurance and run orchestration."""
