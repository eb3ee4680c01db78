"""scode: helpers for running AI coding harnesses inside an OS sandbox."""
