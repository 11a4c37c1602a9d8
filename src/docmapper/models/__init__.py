"""Value models shared by the stores and the persistence layer."""
