OUTPUT_FORMAT_CHOICES = ["text", "json", "csv"]

OUTPUT_FORMAT_HELP_TEXT = (
    "Report format:\n"
    "  text : Human-readable sections (default)\n"
    "  json : Full report as one JSON document\n"
    "  csv  : One row per listed file, for spreadsheets\n"
)

SIMILARITY_HELP_TEXT = (
    "Similarity threshold for --similar, 0-100. Default: 70\n"
    "  Files are grouped when connected through a chain of pairs scoring\n"
    "  at or above the threshold (single-linkage), so two members of one\n"
    "  group may score below it against each other.\n"
    "Example:\n"
    "  %(prog)s -i ~/Documents --similar --threshold 85"
)

OUTLIER_HELP_TEXT = (
    "Minimum size for large-file analysis (e.g., 500KB, 10MB). Default: 10MB\n"
    "  Files below this size are ignored before mean and standard deviation are computed."
)

EPILOG_TEXT = """
Examples:
  Basic usage - exact duplicates, large files, caches and name patterns
  %(prog)s -i ~/projects

  Also group near-duplicate files (slower: every pair is compared)
  %(prog)s -i ~/Documents --similar --threshold 80

  Only compare files within coarse buckets of similar fingerprints
  %(prog)s -i ~/Documents --similar --prefilter

  Include dot-directories such as .git and .venv, limit depth
  %(prog)s -i ~/projects --hidden --max-depth 4

  Machine-readable output
  %(prog)s -i ~/projects --format json > report.json
"""
