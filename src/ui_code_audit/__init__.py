"""
ui-code-audit: accessibility, lint and style audits for front-end projects.

Source files are scanned in bounded batches by line-oriented regex detectors,
ESLint and Stylelint are delegated to as subprocesses, and the results are
merged into JSON/HTML reports plus optional CI artifacts.
"""

__version__ = "0.1.0"
