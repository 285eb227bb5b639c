"""showsort core package.

Classifies the entries of an ingest folder into show, season and episode
identifiers using a declarative table of regex rule groups:

- **compiler**: Template expansion and load-time validation of rule patterns
- **models**: RulePattern, RuleGroup, RuleBook and the classification results
- **classifier**: Directory and file classification with conflict detection
- **processor**: Batch driver over a directory listing
- **config** / **validation**: YAML rule table loading and schema checks

Typical use::

    from showsort import BatchProcessor, build_rulebook, load_config

    rulebook = build_rulebook(load_config(path))
    report = BatchProcessor(rulebook).run_directory(source_dir)
"""

from .classifier import classify_directory, classify_entry, classify_file
from .compiler import PatternCompileError, build_rulebook, compile_pattern
from .config import load_config
from .models import Classified, Conflict, ListingEntry, RuleBook, RuleGroup, RulePattern, Unclassified
from .processor import BatchProcessor
from .version import __version__

__all__ = [
    "__version__",
    "BatchProcessor",
    "Classified",
    "Conflict",
    "ListingEntry",
    "PatternCompileError",
    "RuleBook",
    "RuleGroup",
    "RulePattern",
    "Unclassified",
    "build_rulebook",
    "classify_directory",
    "classify_entry",
    "classify_file",
    "compile_pattern",
    "load_config",
]
