"""Universal Markdown batch orchestrator.

Discovers images, PDFs and Office documents in directory trees and converts
them to sidecar Markdown files with tracked, concurrent batch jobs.
"""

__version__ = "0.1.0"
