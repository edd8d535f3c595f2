"""
Business logic services package.

WHY: Services contain business logic separated from API routes and data access,
following the three-layer architecture (API → Service → DAO). The aggregation
modules (response_filters, question_resolver, question_performance,
trend_aggregator, response_aggregator, breakdowns, survey_summary) are pure
and synchronous; analytics_service wires them to the DAOs.
"""
