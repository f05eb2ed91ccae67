"""Class pages: aggregated class, subclass and spell views over pluggable catalogs."""
