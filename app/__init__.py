"""Table explorer: a read-only query API over a relational data source."""
