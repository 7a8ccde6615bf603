from .provenance import Location, Provenance, MAX_PROVENANCE
from .reporters import Reporter, TextReporter, HtmlReporter, JsonReporter, open_reporter
