"""Sample tests used as discovery targets by the test suite."""
