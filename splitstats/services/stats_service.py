"""
Metrics aggregation service.

get_stats is the single entry point of the accounting core:

1. normalize the requested scope (strict),
2. parse the range once (permissive, one clock read),
3. resolve the caller's access context,
4. require the profile or grant the scope is keyed on,
5. fan the independent repository reads out over the thread pool and join
   them (the first failure aborts the request); reads that need their
   results, such as top-performer names, follow the join,
6. classify the rows against ``range.to`` and return one tagged result.

Repository reads only ever receive ids taken from the resolved access context.
"""

import asyncio
from datetime import datetime, timedelta
from functools import partial
from typing import Any, Callable, Optional

import structlog
from fastapi.concurrency import run_in_threadpool

from splitstats.auth.access_context import AccessContextResolver
from splitstats.config import Settings, get_settings
from splitstats.engine.earnings import (
    average_days_to_hire,
    hired_since,
    pipeline_value,
    placement_totals,
    rank_recruiters,
    summarize_placements,
)
from splitstats.engine.scope import normalize_scope
from splitstats.engine.trends import percent_change, previous_window
from splitstats.engine.windows import parse_range, start_of_month, start_of_year
from splitstats.models.access import AccessContext
from splitstats.models.enums import (
    COMPANY_VISIBLE_STAGES,
    LATE_PIPELINE_STAGES,
    RECRUITER_PIPELINE_STAGES,
    ApplicationStage,
    JobStatus,
    StatsScope,
)
from splitstats.models.stats import (
    CandidateStatsMetrics,
    CandidateStatsResult,
    CompanyStatsMetrics,
    CompanyStatsResult,
    PlatformStatsMetrics,
    PlatformStatsResult,
    PlatformTrends,
    RecruiterStatsMetrics,
    RecruiterStatsResult,
    StatsRange,
    StatsResult,
    TopPerformer,
)
from splitstats.storage.base import StatsRepository
from splitstats.utils.clock import utc_now


class MissingProfileError(Exception):
    """
    Raised when an authenticated caller has no profile or grant for the
    requested scope (e.g. recruiter stats without a recruiter profile).
    """

    def __init__(self, scope: StatsScope, reason: str):
        self.scope = scope
        self.reason = reason
        super().__init__(f"No {scope.value} profile for caller ({reason})")


async def _fan_out(*calls: Callable[[], Any]) -> list:
    """Run blocking reads concurrently in the thread pool; fail fast."""
    return await asyncio.gather(*(run_in_threadpool(call) for call in calls))


class StatsService:
    """
    Orchestrates scope resolution, windowing, data fetch and classification.

    Args:
        storage: Metrics repository
        resolver: Access context resolver for caller identities
        settings: Application settings (defaults to the cached settings)
        clock: Source of the current instant; read once per request
    """

    def __init__(
        self,
        storage: StatsRepository,
        resolver: AccessContextResolver,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage
        self.resolver = resolver
        self.settings = settings or get_settings()
        self.clock = clock
        self.logger = structlog.get_logger()

    async def get_stats(
        self,
        caller_identity: str,
        scope: Optional[str] = None,
        type_: Optional[str] = None,
        range_: Optional[str] = None,
    ) -> StatsResult:
        """
        Compute the caller's metrics for one scope.

        Args:
            caller_identity: External identity of the authenticated caller
            scope: Scope selector ("recruiter", "candidate", "company",
                "platform"/"admin")
            type_: Legacy synonym for ``scope``; used when scope is absent
            range_: Range token ("ytd", "7d", "2w", "3m"); defaults to ytd

        Returns:
            Scope-tagged result with the range window and metrics

        Raises:
            UnknownScopeError: Scope token is not recognized
            AccessResolutionError: Caller identity cannot be resolved
            MissingProfileError: Caller has no profile/grant for the scope
            StorageError: Any repository failure, propagated unchanged
        """
        token = (scope or "").strip() or (type_ or "").strip() or self.settings.default_scope
        stats_scope = normalize_scope(token)
        stats_range = parse_range(range_, now=self.clock())
        access = await run_in_threadpool(self.resolver.resolve, caller_identity)

        self.logger.info(
            "stats_request",
            scope=stats_scope.value,
            range_label=stats_range.label,
            identity_user_id=access.identity_user_id,
        )

        if stats_scope == StatsScope.RECRUITER:
            return await self._recruiter_stats(access, stats_range)
        if stats_scope == StatsScope.CANDIDATE:
            return await self._candidate_stats(access, stats_range)
        if stats_scope == StatsScope.COMPANY:
            return await self._company_stats(access, stats_range)
        return await self._platform_stats(access, stats_range)

    def _missing(self, access: AccessContext, scope: StatsScope, reason: str) -> MissingProfileError:
        self.logger.warning(
            "missing_profile",
            scope=scope.value,
            reason=reason,
            identity_user_id=access.identity_user_id,
        )
        return MissingProfileError(scope, reason)

    # =========================================================================
    # Recruiter
    # =========================================================================

    async def _recruiter_stats(self, access: AccessContext, stats_range: StatsRange) -> RecruiterStatsResult:
        recruiter_id = access.recruiter_id
        if not recruiter_id:
            raise self._missing(access, StatsScope.RECRUITER, "no_recruiter_profile")

        now = stats_range.to
        stale_cutoff = now - timedelta(days=self.settings.stale_candidate_days)
        count = self.storage.count_recruiter_applications

        (
            active_roles,
            candidates_in_process,
            offers_pending,
            submissions_mtd,
            stale_candidates,
            pending_reviews,
            placements,
            pipeline_jobs,
        ) = await _fan_out(
            partial(self.storage.count_active_roles, recruiter_id),
            partial(count, recruiter_id, stages=RECRUITER_PIPELINE_STAGES),
            partial(count, recruiter_id, stages=[ApplicationStage.OFFER]),
            partial(count, recruiter_id, created_since=start_of_month(now)),
            partial(count, recruiter_id, stages=RECRUITER_PIPELINE_STAGES, updated_before=stale_cutoff),
            partial(count, recruiter_id, stages=[ApplicationStage.COMPANY_REVIEW]),
            partial(self.storage.read_recruiter_placements, recruiter_id),
            partial(self.storage.read_pipeline_jobs, recruiter_id, LATE_PIPELINE_STAGES),
        )

        summary = summarize_placements(placements, now)
        metrics = RecruiterStatsMetrics(
            active_roles=active_roles,
            candidates_in_process=candidates_in_process,
            offers_pending=offers_pending,
            placements_this_month=summary.placements_this_month,
            placements_this_year=summary.placements_this_year,
            total_earnings_ytd=summary.earnings_ytd,
            pending_payouts=summary.pending_payouts_amount,
            submissions_mtd=submissions_mtd,
            stale_candidates=stale_candidates,
            pending_reviews=pending_reviews,
            pipeline_value=pipeline_value(pipeline_jobs),
        )

        self.logger.info(
            "recruiter_stats_computed",
            recruiter_id=recruiter_id,
            placements=len(placements),
            pending_payouts=metrics.pending_payouts,
        )
        return RecruiterStatsResult(range=stats_range.to_window(), metrics=metrics)

    # =========================================================================
    # Candidate
    # =========================================================================

    async def _candidate_stats(self, access: AccessContext, stats_range: StatsRange) -> CandidateStatsResult:
        candidate_id = access.candidate_id
        if not candidate_id:
            raise self._missing(access, StatsScope.CANDIDATE, "no_candidate_profile")

        applications = await run_in_threadpool(
            self.storage.read_candidate_applications,
            candidate_id,
            start=stats_range.from_,
            end=stats_range.to,
        )

        stages = [a.stage for a in applications]
        metrics = CandidateStatsMetrics(
            total_applications=len(stages),
            active_applications=sum(1 for s in stages if s in RECRUITER_PIPELINE_STAGES),
            interviews_scheduled=stages.count(ApplicationStage.INTERVIEW),
            offers_received=sum(
                1 for s in stages if s in (ApplicationStage.OFFER, ApplicationStage.ACCEPTED)
            ),
        )
        return CandidateStatsResult(range=stats_range.to_window(), metrics=metrics)

    # =========================================================================
    # Company
    # =========================================================================

    async def _company_stats(self, access: AccessContext, stats_range: StatsRange) -> CompanyStatsResult:
        organization_ids = list(access.organization_ids)
        if not organization_ids:
            raise self._missing(access, StatsScope.COMPANY, "no_organization_membership")

        jobs = await run_in_threadpool(self.storage.read_company_jobs, organization_ids)
        if not jobs:
            return CompanyStatsResult(range=stats_range.to_window(), metrics=CompanyStatsMetrics())

        now = stats_range.to
        month_start = start_of_month(now)
        stale_cutoff = now - timedelta(days=self.settings.stale_role_days)
        job_ids = [j.job_id for j in jobs]
        active_jobs = [j for j in jobs if j.status == JobStatus.ACTIVE]
        stale_eligible = [j for j in active_jobs if j.created_at < stale_cutoff]
        read_apps = self.storage.read_job_applications

        (
            range_applications,
            mtd_applications,
            stale_job_applications,
            placements,
            active_recruiters,
        ) = await _fan_out(
            partial(
                read_apps, job_ids, stages=COMPANY_VISIBLE_STAGES,
                start=stats_range.from_, end=stats_range.to,
            ),
            partial(read_apps, job_ids, stages=COMPANY_VISIBLE_STAGES, start=month_start, end=now),
            partial(read_apps, [j.job_id for j in stale_eligible], stages=COMPANY_VISIBLE_STAGES),
            partial(self.storage.read_job_placements, job_ids),
            partial(self.storage.count_assigned_recruiters, job_ids),
        )

        summary = summarize_placements(placements, now)

        ytd_placements = [
            p for p in placements if hired_since(p, start_of_year(now)) and p.application_id
        ]
        hire_applications = await run_in_threadpool(
            self.storage.read_applications, [p.application_id for p in ytd_placements]
        )
        applied_at = {a.application_id: a.created_at for a in hire_applications}
        avg_days = average_days_to_hire(
            (applied_at[p.application_id], p.hired_at)
            for p in ytd_placements
            if p.application_id in applied_at
        )

        applications_per_job: dict[str, int] = {}
        for application in stale_job_applications:
            applications_per_job[application.job_id] = applications_per_job.get(application.job_id, 0) + 1
        stale_roles = sum(
            1
            for j in stale_eligible
            if applications_per_job.get(j.job_id, 0) < self.settings.stale_role_min_applications
        )

        range_stages = [a.stage for a in range_applications]
        metrics = CompanyStatsMetrics(
            active_roles=len(active_jobs),
            total_applications=len(range_stages),
            interviews_scheduled=range_stages.count(ApplicationStage.INTERVIEW),
            offers_extended=sum(
                1 for s in range_stages if s in (ApplicationStage.OFFER, ApplicationStage.ACCEPTED)
            ),
            placements_this_month=summary.placements_this_month,
            placements_this_year=summary.placements_this_year,
            avg_time_to_hire_days=avg_days,
            active_recruiters=active_recruiters,
            stale_roles=stale_roles,
            applications_mtd=len(mtd_applications),
        )
        return CompanyStatsResult(range=stats_range.to_window(), metrics=metrics)

    # =========================================================================
    # Platform
    # =========================================================================

    async def _platform_stats(self, access: AccessContext, stats_range: StatsRange) -> PlatformStatsResult:
        if not access.is_platform_admin:
            raise self._missing(access, StatsScope.PLATFORM, "not_platform_admin")

        now = stats_range.to
        previous_start, previous_end = previous_window(stats_range)

        counts, placements, new_signups, breakdowns, current_period, previous_period = await _fan_out(
            self.storage.read_platform_counts,
            self.storage.read_placements,
            partial(self.storage.count_users_since, start_of_month(now)),
            self.storage.read_status_breakdowns,
            partial(self.storage.read_platform_period, stats_range.from_, stats_range.to),
            partial(self.storage.read_platform_period, previous_start, previous_end),
        )

        ranked = rank_recruiters(placements, start_of_month(now), limit=self.settings.top_performers_limit)
        names = (
            await run_in_threadpool(self.storage.read_recruiter_names, [rid for rid, _ in ranked])
            if ranked
            else {}
        )

        current_placements, current_revenue = placement_totals(placements, stats_range.from_, stats_range.to)
        previous_placements, previous_revenue = placement_totals(placements, previous_start, previous_end)
        trends = PlatformTrends(
            active_jobs=percent_change(current_period["active_jobs"], previous_period["active_jobs"]),
            active_recruiters=percent_change(
                current_period["active_recruiters"], previous_period["active_recruiters"]
            ),
            total_applications=percent_change(current_period["applications"], previous_period["applications"]),
            total_placements=percent_change(current_placements, previous_placements),
            total_revenue=percent_change(current_revenue, previous_revenue),
        )

        summary = summarize_placements(placements, now)
        avg_value = (
            round(summary.fees_ytd / summary.placements_this_year, 2)
            if summary.placements_this_year
            else 0.0
        )
        metrics = PlatformStatsMetrics(
            **counts,
            placements_this_month=summary.placements_this_month,
            placements_this_year=summary.placements_this_year,
            total_revenue_ytd=summary.platform_revenue_ytd,
            pending_payouts_count=summary.pending_payouts_count,
            pending_payouts_amount=summary.pending_payouts_amount,
            avg_placement_value=avg_value,
            new_signups_mtd=new_signups,
            recruiter_statuses=breakdowns["recruiters"],
            job_statuses=breakdowns["jobs"],
            top_performers=[
                TopPerformer(
                    recruiter_id=recruiter_id,
                    recruiter_name=names.get(recruiter_id, "Unknown"),
                    placement_count=placement_count,
                )
                for recruiter_id, placement_count in ranked
            ],
            trends=trends,
        )

        self.logger.info(
            "platform_stats_computed",
            placements=len(placements),
            top_performers=len(ranked),
        )
        return PlatformStatsResult(range=stats_range.to_window(), metrics=metrics)
