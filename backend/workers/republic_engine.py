"""
Republic Engine - Three autonomous castes working one knowledge graph

Castes (each one asyncio task, one FIFO queue, one examined namespace):
- REASONER (Dr. Iris + Dr. Sage): hypotheses, judgements, discovery
- INVESTIGATOR (Prof. Atlas): forensics, security alerts, ring patrols
- PRICER (Agent Tensor + Agent Hermes): prediction markets, discovery

Flow:
1. awaken() seeds every queue from a full graph scan
2. Each caste pops a node id, skips it if already examined, and calls the
   agent gateway (which routes every response through TRiSM)
3. Tagged lines (HYPOTHESIS:, JUDGEMENT:, ALERT:, MARKET:, QUERY:) become
   artifacts
4. Discovery turns QUERY: lines into search results, new papers land in the
   graph and are enqueued for ALL castes
5. sleep() stops the loops at their next check; in-flight calls finish

Shared state (graph upserts, examined markers, queues) is mutated under one
asyncio.Lock. A queue never holds the same id twice while pending.
"""
import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, List, Dict, Any, Set, Deque, Callable, Awaitable

from config.settings import Settings, get_settings
from models.domain.artifacts import Hypothesis, Judgement, Alert, Market, LogEntry
from models.domain.caste import Caste, ExaminedKey
from models.domain.paper import Paper, PROVENANCE_DISCOVERED
from services.agent_gateway import AgentGateway, GenerationError, GenerationResult
from services.data_oracle import DataOracle
from services.forensics import Forensics, VERDICT_SUSPICIOUS
from services.knowledge_graph import KnowledgeGraph
from services.trism import BreakerLevel
from utils.datetime_utils import utc_now, to_iso
from utils.id_generator import generate_market_id, stable_discovery_id
from utils.tagged_text import extract_tagged, extract_market_proposals, title_keywords

logger = logging.getLogger(__name__)


@dataclass
class Vitals:
    """Running counters exposed through get_status()."""
    born: datetime = field(default_factory=utc_now)
    epoch: int = 0
    papers_analysed: int = 0
    papers_discovered: int = 0
    hypotheses_generated: int = 0
    judgements_rendered: int = 0
    markets_created: int = 0
    alerts_raised: int = 0
    forensics_scans: int = 0
    trism_interventions: int = 0
    agent_actions: int = 0
    errors: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["born"] = to_iso(self.born)
        return data


@dataclass
class CasteSchedule:
    """Pacing for one caste loop, in seconds."""
    start_delay: float
    pacing: float
    idle: float


@dataclass
class PatrolReport:
    rings: List[List[str]] = field(default_factory=list)
    anomalies: List[str] = field(default_factory=list)


class RepublicEngine:
    """
    Caste scheduler over a shared knowledge graph.

    Usage:
        engine = RepublicEngine(kg, gateway, oracle, Forensics(kg), settings)
        await engine.awaken()
        ...
        await engine.shutdown()
    """

    def __init__(
        self,
        kg: KnowledgeGraph,
        gateway: AgentGateway,
        oracle: Optional[DataOracle] = None,
        forensics: Optional[Forensics] = None,
        settings: Optional[Settings] = None,
    ):
        self.kg = kg
        self.gateway = gateway
        self.oracle = oracle
        self.forensics = forensics or Forensics(kg)
        self.settings = settings or get_settings()

        self.schedules: Dict[Caste, CasteSchedule] = {
            Caste.REASONER: CasteSchedule(
                self.settings.reasoner_start_delay,
                self.settings.reasoner_pacing,
                self.settings.reasoner_idle,
            ),
            Caste.INVESTIGATOR: CasteSchedule(
                self.settings.investigator_start_delay,
                self.settings.investigator_pacing,
                self.settings.investigator_idle,
            ),
            Caste.PRICER: CasteSchedule(
                self.settings.pricer_start_delay,
                self.settings.pricer_pacing,
                self.settings.pricer_idle,
            ),
        }

        self.queues: Dict[Caste, Deque[str]] = {caste: deque() for caste in Caste}
        self._pending: Dict[Caste, Set[str]] = {caste: set() for caste in Caste}
        self.examined: Set[ExaminedKey] = set()

        capacity = self.settings.artifact_capacity
        self.hypotheses: Deque[Hypothesis] = deque(maxlen=capacity)
        self.judgements: Deque[Judgement] = deque(maxlen=capacity)
        self.alerts: Deque[Alert] = deque(maxlen=capacity)
        self.markets: Dict[str, Market] = {}
        self.log: Deque[LogEntry] = deque(maxlen=self.settings.log_capacity)

        self.alive = False
        self.epoch = 0
        self.vitals = Vitals()

        self._lock = asyncio.Lock()
        self._stop = asyncio.Event()
        self._tasks: List[asyncio.Task] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def awaken(self) -> bool:
        """Seed all queues from the graph and start the caste loops."""
        if self.alive:
            return False

        self.alive = True
        stop = asyncio.Event()
        self._stop = stop

        async with self._lock:
            papers = self.kg.get_all_nodes()
            for paper in papers:
                self._enqueue_all(paper.id)

        self._log(f"[Republic] The Republic awakens. {len(papers)} papers in the knowledge graph.")
        logger.info(f"🏛️ Republic awakened with {len(papers)} papers")

        # Loops from an earlier awakening may still be finishing a node
        self._tasks = [task for task in self._tasks if not task.done()]
        self._tasks += [
            asyncio.create_task(self._run_caste(Caste.REASONER, self.process_reasoner, stop)),
            asyncio.create_task(self._run_caste(Caste.INVESTIGATOR, self.process_investigator, stop, on_idle=self.patrol)),
            asyncio.create_task(self._run_caste(Caste.PRICER, self.process_pricer, stop)),
        ]
        return True

    def sleep(self) -> bool:
        """Signal the castes to stop at their next check."""
        if not self.alive:
            return False
        self.alive = False
        self._stop.set()
        self._log("[Republic] The Republic sleeps.")
        logger.info("💤 Republic going to sleep")
        return True

    async def shutdown(self):
        """sleep() and wait for the caste loops to finish their current node."""
        self.sleep()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    async def _pause(self, seconds: float, stop: asyncio.Event):
        """Sleep that wakes early when the engine is put to sleep."""
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _run_caste(
        self,
        caste: Caste,
        handler: Callable[[str], Awaitable[None]],
        stop: asyncio.Event,
        on_idle: Optional[Callable[[], Awaitable[Any]]] = None,
    ):
        schedule = self.schedules[caste]
        logger.info(f"[{caste.value}] Started")
        await self._pause(schedule.start_delay, stop)

        while not stop.is_set():
            node_id = self._pop(caste)
            if node_id is None:
                if on_idle is not None:
                    try:
                        await on_idle()
                    except Exception as e:
                        self.vitals.errors += 1
                        logger.error(f"[{caste.value}] Idle task failed: {e}", exc_info=True)
                await self._pause(schedule.idle, stop)
                continue

            try:
                await handler(node_id)
            except Exception as e:
                self.vitals.errors += 1
                logger.error(f"[{caste.value}] Failed on {node_id}: {e}", exc_info=True)
                self._log(f"[{caste.value.capitalize()}] Error on {node_id}: {e}")

            await self._pause(schedule.pacing, stop)

        logger.info(f"[{caste.value}] Stopped")

    # ------------------------------------------------------------------
    # Queues
    # ------------------------------------------------------------------

    def _enqueue(self, caste: Caste, node_id: str) -> bool:
        if node_id in self._pending[caste] or ExaminedKey(caste, node_id) in self.examined:
            return False
        self.queues[caste].append(node_id)
        self._pending[caste].add(node_id)
        return True

    def _enqueue_all(self, node_id: str):
        for caste in Caste:
            self._enqueue(caste, node_id)

    def _pop(self, caste: Caste) -> Optional[str]:
        queue = self.queues[caste]
        if not queue:
            return None
        node_id = queue.popleft()
        self._pending[caste].discard(node_id)
        return node_id

    async def _claim(self, caste: Caste, node_id: str) -> Optional[Paper]:
        """Mark a node examined for this caste; None if already done or gone."""
        async with self._lock:
            key = ExaminedKey(caste, node_id)
            if key in self.examined:
                return None
            paper = self.kg.get_node(node_id)
            if paper is None:
                return None
            self.examined.add(key)
            return paper

    # ------------------------------------------------------------------
    # Reasoners
    # ------------------------------------------------------------------

    async def process_reasoner(self, node_id: str):
        paper = await self._claim(Caste.REASONER, node_id)
        if paper is None:
            return

        self.epoch += 1
        self.vitals.epoch = self.epoch
        self._log(f'[Reasoner] Dr. Iris contemplates: "{paper.title}"')

        neighbourhood = self.kg.neighbourhood(node_id, 2)
        context = '\n'.join(f"- {n.title} ({n.year})" for n in neighbourhood.nodes)

        iris = await self._generate('iris', f"""You are traversing the Knowledge Graph of The Republic. This paper exists within a citation network.

PAPER: "{paper.title}" by {', '.join(paper.authors)} ({paper.year})
Abstract: {paper.abstract or 'N/A'}
Citations: {paper.citation_count or 0}

NEARBY IN THE GRAPH ({len(neighbourhood.nodes)} connected papers):
{context}

As a Philosopher King of The Republic, render your judgement:
1. What are the 3 most important testable claims? Format each as "HYPOTHESIS: <claim>"
2. What papers should exist but don't? Suggest searches as "QUERY: <search terms>"
3. Rate the paper's contribution to human knowledge (1-10) and explain why.

Be precise. Be honest. Favour evidence over authority.""")

        hypotheses = extract_tagged(iris.text, 'HYPOTHESIS') if iris else []
        if iris:
            self.vitals.papers_analysed += 1
        for text in hypotheses:
            self.hypotheses.append(Hypothesis(
                text=text,
                agent_id='iris',
                paper_id=node_id,
                paper_title=paper.title,
                epoch=self.epoch,
            ))
            self.vitals.hypotheses_generated += 1

        numbered = '\n'.join(f"{i + 1}. {h}" for i, h in enumerate(hypotheses)) or 'None extracted.'
        sage = await self._generate('sage', f"""As a Guardian of epistemic integrity in The Republic, critically review this paper.

PAPER: "{paper.title}" ({paper.year})
Abstract: {paper.abstract or 'N/A'}

Dr. Iris's analysis identified these hypotheses:
{numbered}

Your duty:
1. Rate reproducibility (1-10). Explain.
2. Identify the WEAKEST claim. Why is it weak?
3. What statistical or methodological concerns exist?
4. Issue a JUDGEMENT: "JUDGEMENT: CREDIBLE|UNCERTAIN|SUSPICIOUS - <reason>"

Be ruthless. Truth requires it.""")

        judgements = extract_tagged(sage.text, 'JUDGEMENT') if sage else []
        for text in judgements:
            self.judgements.append(Judgement(
                text=text,
                agent_id='sage',
                paper_id=node_id,
                paper_title=paper.title,
                epoch=self.epoch,
            ))
            self.vitals.judgements_rendered += 1

        self._log(
            f'[Reasoner] Judgement rendered on "{paper.title}": '
            f'{len(hypotheses)} hypotheses, {len(judgements)} judgements'
        )

        await self.discover(paper, iris.text if iris else '')

    # ------------------------------------------------------------------
    # Investigators
    # ------------------------------------------------------------------

    async def process_investigator(self, node_id: str):
        paper = await self._claim(Caste.INVESTIGATOR, node_id)
        if paper is None:
            return

        self._log(f'[Investigator] Prof. Atlas investigates: "{paper.title}"')

        result = self.forensics.score_paper(node_id, paper.abstract or '')
        self.vitals.forensics_scans += 1
        score = result.synthetic_ethos_score

        if result.verdict != VERDICT_SUSPICIOUS and score >= self.settings.forensics_alert_threshold:
            self._log(f'[Investigator] "{paper.title}" cleared (score: {score})')
            return

        self._log(f'[Investigator] ALERT: "{paper.title}" flagged as {result.verdict} (score: {score})')

        atlas = await self._generate('atlas', f"""SECURITY ALERT - A paper has been flagged by The Republic's forensics system.

PAPER: "{paper.title}" ({paper.year})
Abstract: {paper.abstract or 'N/A'}
Synthetic Ethos Score: {score}/100
Forensics Verdict: {result.verdict}
Deontic markers: {result.deontic.deontic_count} | Hedge markers: {result.deontic.hedge_count}

As Chief Architect and Warrior of The Republic:
1. Assess whether this paper shows signs of fabrication or AI generation
2. Check if the methodology described is internally consistent
3. Identify any claims that contradict known results in the graph
4. Issue: "ALERT: <severity HIGH|MEDIUM|LOW> - <finding>"

Defend the Republic's integrity.""")

        if not atlas:
            return

        for text in extract_tagged(atlas.text, 'ALERT'):
            self.alerts.append(Alert(
                text=text,
                agent_id='atlas',
                paper_id=node_id,
                paper_title=paper.title,
                epoch=self.epoch,
                forensics_score=score,
            ))
            self.vitals.alerts_raised += 1

    async def patrol(self) -> PatrolReport:
        """Idle-time sweep: citation rings and connectivity anomalies."""
        report = PatrolReport()
        report.rings = self.kg.detect_rings(self.settings.ring_min_length)
        if report.rings:
            self._log(f"[Investigator] PATROL: Detected {len(report.rings)} potential citation rings")

        threshold = self.settings.anomaly_citation_threshold
        for paper in self.kg.get_all_nodes():
            if (paper.citation_count or 0) <= threshold:
                continue
            if self.kg.causal_density(paper.id).density == 0:
                report.anomalies.append(paper.id)
                self._log(
                    f'[Investigator] ANOMALY: "{paper.title}" has {paper.citation_count} '
                    f'citations but 0 graph connections'
                )
        return report

    # ------------------------------------------------------------------
    # Pricers
    # ------------------------------------------------------------------

    async def process_pricer(self, node_id: str):
        paper = await self._claim(Caste.PRICER, node_id)
        if paper is None:
            return

        self._log(f'[Pricer] Agent Tensor prices: "{paper.title}"')

        tensor = await self._generate('tensor', f"""You are an Artisan of The Republic, a computational realist who prices truth.

PAPER: "{paper.title}" ({paper.year})
Abstract: {paper.abstract or 'N/A'}
Citations: {paper.citation_count or 0}

Your duties:
1. Estimate replication cost in GPU-hours and dollars
2. Estimate probability of successful replication (0-100%)
3. Identify the biggest computational risk
4. Create a market: "MARKET: <question> | PROBABILITY: <0-100>"

Price truth accurately. The Republic's treasury depends on it.""")

        if tensor:
            for question, probability in extract_market_proposals(tensor.text):
                market = Market.from_probability(
                    market_id=generate_market_id(),
                    paper_id=node_id,
                    paper_title=paper.title,
                    question=question,
                    probability=probability,
                    created_by='tensor',
                    epoch=self.epoch,
                )
                self.markets[market.id] = market
                self.vitals.markets_created += 1
                self._log(f'[Pricer] Market created: "{question}" @ {probability}%')

        hermes = await self._generate('hermes', f"""You are Hermes, Data Oracle of The Republic. Verify this paper's claims against external sources.

PAPER: "{paper.title}" ({paper.year})
Abstract: {paper.abstract or 'N/A'}

Cross-reference:
1. Are the claimed citation counts accurate?
2. Does the abstract's language match established norms for this field?
3. Suggest 3 search queries to find papers that CONTRADICT this work. Format: "QUERY: <search terms>"
4. Rate data integrity (1-10)

Trust nothing. Verify everything.""")

        if hermes:
            queries = extract_tagged(hermes.text, 'QUERY')
            for query in queries[:self.settings.discovery_max_queries]:
                await self.discover_from_query(query)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def discover(self, paper: Paper, content: str) -> int:
        """Discovery from QUERY: lines, falling back to title keywords."""
        queries = extract_tagged(content, 'QUERY')
        if not queries:
            keywords = title_keywords(paper.title)
            if keywords:
                queries = [' '.join(keywords)]

        added = 0
        for query in queries[:self.settings.discovery_max_queries]:
            added += await self.discover_from_query(query)
        return added

    async def discover_from_query(self, query: str) -> int:
        """Search, add unseen papers to the graph, and feed them to every caste."""
        if self.oracle is None:
            return 0

        try:
            results = await self.oracle.search(query, self.settings.discovery_sources)
        except Exception as e:
            self._log(f'[Discovery] Error searching "{query}": {e}')
            logger.warning(f"⚠️ Discovery search failed for '{query}': {e}")
            return 0

        added = 0
        async with self._lock:
            for record in results[:self.settings.discovery_results_per_query]:
                title = record.get('title')
                if not title:
                    continue
                paper = Paper.from_dict(record)
                paper.id = paper.id or stable_discovery_id(title)
                if self.kg.get_node(paper.id) is not None:
                    continue

                paper.source = PROVENANCE_DISCOVERED
                paper.discovered_at = utc_now()
                self.kg.add_node(paper, persist=False)
                self._enqueue_all(paper.id)
                self.vitals.papers_discovered += 1
                added += 1

        if added:
            # One snapshot per batch, off the event loop
            await asyncio.to_thread(self.kg.flush)
            self._log(f'[Discovery] "{query}" -> {added} new papers added to the Republic')
        return added

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    async def _generate(self, persona_id: str, prompt: str) -> Optional[GenerationResult]:
        """Gateway call; a failure skips this call's contribution."""
        try:
            result = await self.gateway.generate(persona_id, prompt)
        except GenerationError as e:
            self._log(f"[Gateway] {persona_id} call skipped: {e}")
            logger.warning(f"⚠️ {persona_id} generation skipped: {e}")
            return None

        self.vitals.agent_actions += 1
        if result.trism is not None and result.trism.action is not BreakerLevel.NORMAL:
            self.vitals.trism_interventions += 1
            self._log(
                f"[TRiSM] {persona_id} at {result.trism.action.value} "
                f"(combined score {result.trism.combined_score:.2f})"
            )
        return result

    def _log(self, message: str):
        self.log.append(LogEntry(message=message))
        logger.debug(message)

    def get_status(self) -> Dict[str, Any]:
        return {
            "alive": self.alive,
            "epoch": self.epoch,
            "vitals": self.vitals.to_dict(),
            "queues": {caste.value: len(queue) for caste, queue in self.queues.items()},
            "kg": self.kg.get_stats(),
            "markets": len(self.markets),
            "hypotheses": len(self.hypotheses),
            "judgements": len(self.judgements),
            "alerts": len(self.alerts),
            "recent_log": [entry.to_dict() for entry in list(self.log)[-30:]],
            "recent_hypotheses": [h.to_dict() for h in list(self.hypotheses)[-3:]],
            "recent_alerts": [a.to_dict() for a in list(self.alerts)[-3:]],
            "budget": self.gateway.get_budget(),
        }

    def get_hypotheses(self) -> List[Hypothesis]:
        return list(self.hypotheses)

    def get_judgements(self) -> List[Judgement]:
        return list(self.judgements)

    def get_alerts(self) -> List[Alert]:
        return list(self.alerts)

    def get_markets(self) -> List[Market]:
        return list(self.markets.values())
