"""Repository analysis: resolve every ecosystem, build the graph, emit SBOMs."""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlparse

from ._assembly import AssemblyOptions, get_assembler
from ._resolution import CancellationToken, ResolverRegistry, create_default_registry
from .exceptions import ResolutionCancelledError, SbomGeneratorError
from .graph import PackageGraph
from .http_client import DEFAULT_TIMEOUT, create_session
from .inventory import Inventory, Manifest
from .logging_config import logger
from .models import AnalysisError, DeclaredDependency, Ecosystem, PackageNode

DEFAULT_MAX_WORKERS = 4
DEFAULT_DOCUMENT_NAME = "sbom"

# Merge order of per-ecosystem results
ECOSYSTEM_ORDER = list(Ecosystem)


@dataclass
class RepositoryAnalysis:
    """Outcome of analyzing one repository.

    Attributes:
        repository_url: Repository the inventory was taken from, if known
        ref: Branch, tag or commit analyzed
        analyzed_at: When the analysis finished
        graph: Frozen package graph
        manifests: Paths of manifests whose dependencies were resolved
        errors: Recoverable problems (bad manifests, cancelled ecosystems)
        package_counts: Nodes contributed per ecosystem
    """

    repository_url: Optional[str]
    ref: Optional[str]
    analyzed_at: datetime
    graph: PackageGraph
    manifests: List[str] = field(default_factory=list)
    errors: List[AnalysisError] = field(default_factory=list)
    package_counts: Dict[Ecosystem, int] = field(default_factory=dict)

    @property
    def document_name(self) -> str:
        return document_name_from_repo(self.repository_url)


def document_name_from_repo(repository_url: Optional[str]) -> str:
    """
    Derive an SBOM document name ``owner-repo`` from a repository URL.

    Accepts full URLs (``https://github.com/owner/repo.git``), scp-style git
    remotes (``git@github.com:owner/repo``) and bare ``owner/repo``.
    Falls back to ``sbom`` when no owner and repository can be found.
    """
    if not repository_url or not repository_url.strip():
        return DEFAULT_DOCUMENT_NAME

    value = repository_url.strip()
    if "://" in value:
        path = urlparse(value).path
    elif value.startswith("git@") and ":" in value:
        path = value.split(":", 1)[1]
    else:
        path = value

    parts = [part for part in path.split("/") if part]
    if len(parts) < 2:
        return DEFAULT_DOCUMENT_NAME

    owner, repo = parts[-2], parts[-1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return f"{owner}-{repo}" if owner and repo else DEFAULT_DOCUMENT_NAME


class SbomOrchestrator:
    """
    Coordinate resolution across ecosystems and SBOM generation.

    Each ecosystem is resolved in its own worker thread with its own HTTP
    session. Results are merged into the graph on the calling thread in a
    fixed ecosystem order, so the output does not depend on which worker
    finishes first.

    Example:
        orchestrator = SbomOrchestrator(max_workers=4)
        analysis = orchestrator.analyze(load_inventory("inventory.json"))
        print(orchestrator.generate(analysis, "cyclonedx"))
    """

    def __init__(
        self,
        registry: Optional[ResolverRegistry] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.registry = registry if registry is not None else create_default_registry(timeout=timeout)
        self.max_workers = max(1, max_workers)
        self._tokens: Dict[Ecosystem, CancellationToken] = {}
        self._lock = threading.Lock()

    def _token_for(self, ecosystem: Ecosystem) -> CancellationToken:
        with self._lock:
            token = self._tokens.get(ecosystem)
            if token is None:
                token = self._tokens[ecosystem] = CancellationToken()
            return token

    def cancel(self, ecosystem: Optional[Ecosystem] = None) -> None:
        """
        Cancel resolution of one ecosystem, or of all when ``ecosystem`` is None.

        Cancelling before ``analyze`` starts makes that ecosystem contribute
        nothing; cancelling mid-run stops its traversal at the next package.
        A cancellation lasts for one ``analyze`` call.
        """
        targets = [ecosystem] if ecosystem is not None else ECOSYSTEM_ORDER
        for target in targets:
            self._token_for(Ecosystem.parse(target)).cancel()
            logger.info(f"Cancellation requested for {Ecosystem.parse(target).value}")

    def analyze(
        self,
        inventory: Inventory,
        repository_url: Optional[str] = None,
        ecosystems: Optional[Iterable[Ecosystem]] = None,
        include_files: bool = True,
        include_transitive: bool = True,
    ) -> RepositoryAnalysis:
        """
        Resolve every manifest in the inventory into a frozen package graph.

        Args:
            inventory: Parsed dependency inventory
            repository_url: Overrides the inventory's repository URL
            ecosystems: Only resolve these ecosystems (all when None)
            include_files: Attach the inventory's file listings to nodes
            include_transitive: Follow registry dependencies past direct refs

        Returns:
            RepositoryAnalysis with the frozen graph and recorded errors
        """
        allowed = {Ecosystem.parse(e) for e in ecosystems} if ecosystems else None
        errors: List[AnalysisError] = list(inventory.errors)
        manifests: List[str] = []
        refs_by_ecosystem: Dict[Ecosystem, List[DeclaredDependency]] = {}

        for manifest in inventory.manifests:
            if allowed is not None and manifest.ecosystem not in allowed:
                logger.debug(f"Skipping {manifest.path}: {manifest.ecosystem.value} not selected")
                continue
            if not self.registry.supports(manifest.ecosystem):
                errors.append(
                    AnalysisError(
                        manifest=manifest.path,
                        message=f"No resolver registered for {manifest.ecosystem.value}",
                        ecosystem=manifest.ecosystem,
                        error_type="UnsupportedEcosystem",
                    )
                )
                continue
            manifests.append(manifest.path)
            refs_by_ecosystem.setdefault(manifest.ecosystem, []).extend(manifest.dependencies)

        try:
            results = self._resolve_all(refs_by_ecosystem, include_transitive, errors, inventory.manifests)
        finally:
            # Cancellation applies to one run; the next analyze starts clean
            with self._lock:
                self._tokens.clear()

        graph = PackageGraph()
        package_counts: Dict[Ecosystem, int] = {}
        for ecosystem in ECOSYSTEM_ORDER:
            nodes = results.get(ecosystem)
            if nodes is None:
                continue
            graph.merge(nodes)
            package_counts[ecosystem] = len(nodes)

        if include_files:
            attached = sum(1 for listing in inventory.file_listings if graph.attach_files(listing.identity, listing.files))
            if inventory.file_listings:
                logger.debug(f"Attached file listings to {attached}/{len(inventory.file_listings)} packages")

        graph.freeze()
        logger.info(
            f"Analysis complete: {len(graph)} packages ({len(graph.direct_nodes)} direct) "
            f"across {len(package_counts)} ecosystems, {len(errors)} errors"
        )
        return RepositoryAnalysis(
            repository_url=repository_url or inventory.repository_url,
            ref=inventory.ref,
            analyzed_at=datetime.now(timezone.utc),
            graph=graph,
            manifests=manifests,
            errors=errors,
            package_counts=package_counts,
        )

    def _resolve_all(
        self,
        refs_by_ecosystem: Dict[Ecosystem, List[DeclaredDependency]],
        include_transitive: bool,
        errors: List[AnalysisError],
        manifests: List[Manifest],
    ) -> Dict[Ecosystem, List[PackageNode]]:
        if not refs_by_ecosystem:
            return {}

        results: Dict[Ecosystem, List[PackageNode]] = {}
        workers = min(self.max_workers, len(refs_by_ecosystem))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="resolver") as executor:
            futures: Dict[Ecosystem, Future] = {
                ecosystem: executor.submit(self._resolve_ecosystem, ecosystem, refs, include_transitive)
                for ecosystem, refs in refs_by_ecosystem.items()
            }
            for ecosystem in ECOSYSTEM_ORDER:
                future = futures.get(ecosystem)
                if future is None:
                    continue
                label = _manifest_label(ecosystem, manifests)
                try:
                    results[ecosystem] = future.result()
                except ResolutionCancelledError as e:
                    logger.warning(f"{ecosystem.value} resolution cancelled: {e}")
                    errors.append(
                        AnalysisError(
                            manifest=label, message=str(e), ecosystem=ecosystem, error_type="ResolutionCancelled"
                        )
                    )
                except SbomGeneratorError as e:
                    logger.error(f"{ecosystem.value} resolution failed: {e}")
                    errors.append(
                        AnalysisError(manifest=label, message=str(e), ecosystem=ecosystem, error_type="ResolutionError")
                    )
        return results

    def _resolve_ecosystem(
        self, ecosystem: Ecosystem, refs: List[DeclaredDependency], include_transitive: bool
    ) -> List[PackageNode]:
        token = self._token_for(ecosystem)
        token.raise_if_cancelled(f"{ecosystem.value} cancelled before start")
        logger.info(f"Resolving {len(refs)} {ecosystem.value} dependencies")
        with create_session() as session:
            return self.registry.resolve(ecosystem, refs, session, token, include_transitive)

    def generate(
        self,
        analysis: RepositoryAnalysis,
        sbom_format: str,
        options: Optional[AssemblyOptions] = None,
    ) -> str:
        """
        Render the analysis graph as one SBOM document.

        Args:
            analysis: Result of ``analyze``
            sbom_format: Format name or alias ("spdx2", "spdx-3.0.1", "cdx", ...)
            options: Assembly options; the document name defaults to ``owner-repo``

        Returns:
            Serialized JSON document

        Raises:
            ConfigurationError: If the format is unknown
            AssemblyError: If the document cannot be assembled
        """
        if options is None:
            options = AssemblyOptions(document_name=analysis.document_name)
        assembler = get_assembler(sbom_format)
        logger.info(f"Generating {assembler.format_name} SBOM '{options.document_name}'")
        return assembler.render(analysis.graph, options)


def _manifest_label(ecosystem: Ecosystem, manifests: List[Manifest]) -> str:
    paths = [m.path for m in manifests if m.ecosystem == ecosystem]
    return ", ".join(paths) if paths else ecosystem.value
