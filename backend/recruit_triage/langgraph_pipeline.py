"""
LangGraph-powered recruitment triage pipeline.

Flow: START -> search_inbox -> deduplicate -> extract_metadata -> sort
      -> dispatch_<bucket> for each non-empty bucket (in bucket order) -> END

Every node returns a partial state update. One run is one sequential pass;
overlapping runs are not prevented, the dedupe cache keeps them from
replying twice within the TTL window.
"""
import logging
import operator
from concurrent.futures import ThreadPoolExecutor
from typing import Annotated, Any, List, Optional

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from .config import Settings
from .gmail_service import GmailClient, get_gmail_service
from .schemas import (
    Bucket,
    DispatchOutcome,
    ExtractedMetadata,
    MessageRef,
    PipelineRunResult,
    PipelineTrigger,
    SortedBuckets,
)
from .services.dispatcher import Dispatcher
from .services.llm_service import LLMClient
from .services.metadata_extractor import MetadataExtractor
from .services.redis_cache import DedupeCache
from .services.sorter import BUCKET_FIELDS, records_in, sort_records
from .services.sources import ApplicationSource, get_source
from .services.templates import TemplateStore

logger = logging.getLogger(__name__)

BUCKET_ORDER = list(BUCKET_FIELDS)


# =============================================================================
# State Schema
# =============================================================================

class PipelineState(TypedDict, total=False):
    """State that flows through the pipeline graph."""
    # Trigger
    source: str
    triggered_by: str

    # Steps
    messages: List[MessageRef]
    fresh_messages: List[MessageRef]
    records: List[ExtractedMetadata]
    buckets: SortedBuckets

    # Accumulated by the dispatch branches
    dispatch: Annotated[List[DispatchOutcome], operator.add]
    errors: Annotated[List[str], operator.add]


def dispatch_node_name(bucket: Bucket) -> str:
    return f"dispatch_{bucket.value}"


# =============================================================================
# Pipeline
# =============================================================================

class RecruitmentPipeline:
    """One application source wired to its collaborators and compiled into a graph."""

    def __init__(
        self,
        settings: Settings,
        source: ApplicationSource,
        gmail: GmailClient,
        dedupe: DedupeCache,
        extractor: MetadataExtractor,
        dispatcher: Dispatcher,
    ):
        self.settings = settings
        self.source = source
        self.gmail = gmail
        self.dedupe = dedupe
        self.extractor = extractor
        self.dispatcher = dispatcher
        self.graph = self._create_graph()

    # -- nodes ---------------------------------------------------------------

    def search_inbox_node(self, state: PipelineState) -> dict:
        messages = self.gmail.search_messages(self.source.search_query)
        logger.info(f"[{self.source.name}] Found {len(messages)} messages for {self.source.search_query!r}")
        return {"messages": messages}

    def deduplicate_node(self, state: PipelineState) -> dict:
        fresh: List[MessageRef] = []
        for ref in state.get("messages", []):
            if not ref.id:
                logger.warning(f"Search result without message id, skipping (thread {ref.thread_id})")
                continue
            if self.settings.dry_run:
                # Dry runs must not mark messages, or the next real run would skip them.
                if not self.dedupe.is_processed(ref.id, "email"):
                    fresh.append(ref)
            elif self.dedupe.should_process(ref.id, "email"):
                fresh.append(ref)
        return {"fresh_messages": fresh}

    def extract_metadata_node(self, state: PipelineState) -> dict:
        refs = state.get("fresh_messages", [])
        workers = max(1, self.settings.extraction_workers)
        if workers == 1 or len(refs) <= 1:
            results = [self.extractor.extract(ref.id, ref.thread_id) for ref in refs]
        else:
            # map() keeps input order; workers share one GmailClient
            with ThreadPoolExecutor(max_workers=workers) as pool:
                results = list(pool.map(lambda ref: self.extractor.extract(ref.id, ref.thread_id), refs))
        records = [r for r in results if r is not None]
        logger.info(f"[{self.source.name}] Extracted {len(records)} of {len(refs)} messages")
        return {"records": records}

    def sort_node(self, state: PipelineState) -> dict:
        buckets = sort_records(state.get("records", []), require_cover_letter=self.source.requires_cover_letter)
        logger.info(f"[{self.source.name}] Buckets: {buckets.counts()}")
        return {"buckets": buckets}

    def _make_dispatch_node(self, bucket: Bucket):
        def dispatch_node(state: PipelineState) -> dict:
            outcome = self.dispatcher.dispatch_bucket(bucket, records_in(state["buckets"], bucket))
            return {"dispatch": [outcome], "errors": list(outcome.errors)}

        return dispatch_node

    # -- routing -------------------------------------------------------------

    def _route_after(self, after: Optional[Bucket]):
        """Next non-empty bucket after `after` (None = from the start), else END."""
        start = 0 if after is None else BUCKET_ORDER.index(after) + 1
        remaining = BUCKET_ORDER[start:]

        def route(state: PipelineState) -> str:
            buckets = state.get("buckets")
            if buckets is None:
                return END
            for bucket in remaining:
                if records_in(buckets, bucket):
                    return dispatch_node_name(bucket)
            return END

        path_map = [dispatch_node_name(b) for b in remaining] + [END]
        return route, path_map

    # -- graph ---------------------------------------------------------------

    def _create_graph(self) -> Any:
        graph = StateGraph(PipelineState)

        graph.add_node("search_inbox", self.search_inbox_node)
        graph.add_node("deduplicate", self.deduplicate_node)
        graph.add_node("extract_metadata", self.extract_metadata_node)
        graph.add_node("sort", self.sort_node)
        for bucket in BUCKET_ORDER:
            graph.add_node(dispatch_node_name(bucket), self._make_dispatch_node(bucket))

        graph.add_edge(START, "search_inbox")
        graph.add_edge("search_inbox", "deduplicate")
        graph.add_edge("deduplicate", "extract_metadata")
        graph.add_edge("extract_metadata", "sort")

        # Buckets are dispatched one after another, in bucket order.
        route, path_map = self._route_after(None)
        graph.add_conditional_edges("sort", route, path_map)
        for bucket in BUCKET_ORDER:
            route, path_map = self._route_after(bucket)
            graph.add_conditional_edges(dispatch_node_name(bucket), route, path_map)

        return graph.compile()

    # -- public API ----------------------------------------------------------

    def run(self, trigger: Optional[PipelineTrigger] = None) -> PipelineRunResult:
        trigger = trigger or PipelineTrigger(source=self.source.name)
        initial_state: PipelineState = {
            "source": self.source.name,
            "triggered_by": trigger.triggered_by,
            "dispatch": [],
            "errors": [],
        }
        state = self.graph.invoke(initial_state)

        messages = state.get("messages", [])
        fresh = state.get("fresh_messages", [])
        buckets = state.get("buckets") or SortedBuckets()
        result = PipelineRunResult(
            source=self.source.name,
            triggered_by=trigger.triggered_by,
            found=len(messages),
            deduplicated=len(messages) - len(fresh),
            extracted=len(state.get("records", [])),
            buckets=buckets.counts(),
            dispatch=state.get("dispatch", []),
            errors=state.get("errors", []),
        )
        logger.info(
            f"[{self.source.name}] Run finished: found={result.found} deduplicated={result.deduplicated} "
            f"extracted={result.extracted}"
        )
        return result


# =============================================================================
# Factory
# =============================================================================

def build_pipeline(
    settings: Settings,
    source_name: str = "direct",
    gmail: Optional[GmailClient] = None,
    dedupe: Optional[DedupeCache] = None,
    llm: Optional[LLMClient] = None,
) -> RecruitmentPipeline:
    """Wire a pipeline for one source. Collaborators default to the real Gmail, Redis and OpenAI clients."""
    source = get_source(source_name, settings)
    gmail = gmail or GmailClient(get_gmail_service(settings), settings)
    dedupe = dedupe or DedupeCache.from_settings(settings)
    llm = llm or LLMClient(settings)
    extractor = MetadataExtractor(settings, gmail, llm, source)
    dispatcher = Dispatcher(settings, gmail, TemplateStore(settings, gmail))
    return RecruitmentPipeline(settings, source, gmail, dedupe, extractor, dispatcher)


def run_pipeline(settings: Settings, trigger: PipelineTrigger) -> PipelineRunResult:
    """Entry point for the scheduler, the API and the CLI."""
    return build_pipeline(settings, trigger.source).run(trigger)
