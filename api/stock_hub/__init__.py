"""Stock Hub - two-tier product and inventory service."""
