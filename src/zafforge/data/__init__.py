"""Reference data access backed by xraylib."""
