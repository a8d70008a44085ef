"""Record schemas and the record <-> string map boundary."""
