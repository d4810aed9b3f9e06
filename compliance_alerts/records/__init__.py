# Read-only mappings of the business tables owned by the CRUD modules.
# The alert engine selects from these and never writes to them.
