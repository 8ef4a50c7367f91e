"""Infrastructure adapters for the cluster API and external secret stores."""
