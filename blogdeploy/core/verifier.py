# -----------------------------------------------------------------------------
# THE INSPECTOR - BUILD OUTPUT CHECKS
# -----------------------------------------------------------------------------
# Responsibility: Cheap sanity checks on a fresh build before it is allowed
# anywhere near the deploy branch.
#
# Checks:
# - Required files exist (e.g. index.html)
# - The feed is served as a bare XML document, not wrapped in a page layout
# -----------------------------------------------------------------------------

import xml.etree.ElementTree as ET

from rich.console import Console

from blogdeploy.domain.models import BuildOutput, DeployConfig

console = Console()

# Root elements of RSS 2.0 and Atom documents
FEED_ROOTS = {"rss", "feed", "rdf"}


class VerificationError(Exception):
    """Raised when the build output fails a sanity check."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


def _local_name(tag: str) -> str:
    """'{http://www.w3.org/2005/Atom}feed' -> 'feed'"""
    return tag.rsplit("}", 1)[-1].split(":")[-1].lower()


class OutputVerifier:
    """Validates a BuildOutput against required_files and feed_path."""

    def __init__(self, config: DeployConfig) -> None:
        self._required = config.required_files
        self._feed_path = config.feed_path

    def verify(self, output: BuildOutput) -> None:
        """
        Run every configured check.

        Raises:
            VerificationError: On the first failed check
        """
        present = set(output.files)
        for required in self._required:
            if required not in present:
                raise VerificationError(f"Build output is missing {required}", path=required)

        if self._feed_path:
            self._check_feed(output)

        console.print(f"[green][INSPECTOR] Build output looks sane ({len(present)} files)[/green]")

    def _check_feed(self, output: BuildOutput) -> None:
        feed = output.path / self._feed_path
        if not feed.is_file():
            raise VerificationError(f"Feed not found at {self._feed_path}", path=self._feed_path)

        try:
            root = ET.parse(feed).getroot()
        except ET.ParseError as e:
            raise VerificationError(
                f"Feed {self._feed_path} is not well-formed XML: {e}", path=self._feed_path
            ) from e

        name = _local_name(root.tag)
        if name == "html":
            raise VerificationError(
                f"Feed {self._feed_path} was rendered inside a page layout", path=self._feed_path
            )
        if name not in FEED_ROOTS:
            raise VerificationError(
                f"Feed {self._feed_path} has unexpected root element <{name}>",
                path=self._feed_path,
            )
