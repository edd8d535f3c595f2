"""
Integration tests for the response lifecycle API.

WHAT: Sessions, answers, submission and admin corrections over HTTP.

WHY: The lifecycle endpoints are the only way data enters analytics, so
the end-to-end flow must leave exactly one record per respondent:
an open session while answering, a completed response after submit.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from survey_analytics.dao.survey import IncompleteSurveyResponseDAO
from survey_analytics.models.base import utc_now
from tests.factories import ResponseFactory, SurveyFactory


async def _start(client: AsyncClient, survey_id: int, respondent_id: str = "r1", **extra):
    return await client.post(
        "/api/responses/sessions",
        json={"survey_id": survey_id, "respondent_id": respondent_id, **extra},
    )


class TestSessions:

    @pytest.mark.asyncio
    async def test_start_and_resume(self, client: AsyncClient, db_session: AsyncSession):
        survey = await SurveyFactory.create(db_session)

        first = await _start(client, survey.id, device_type="mobile")
        again = await _start(client, survey.id)

        assert first.status_code == 201
        assert first.json()["created"] is True
        assert first.json()["session"]["device_type"] == "mobile"
        assert again.status_code == 200
        assert again.json()["created"] is False
        assert again.json()["session"]["id"] == first.json()["session"]["id"]

    @pytest.mark.asyncio
    async def test_start_unpublished_survey(self, client: AsyncClient, db_session: AsyncSession):
        draft = await SurveyFactory.create(db_session, published=False)

        response = await _start(client, draft.id)

        assert response.status_code == 400
        assert response.json()["error"] == "SurveyNotPublishedError"

    @pytest.mark.asyncio
    async def test_start_unknown_survey(self, client: AsyncClient):
        response = await _start(client, 9999)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_device_type(self, client: AsyncClient, db_session: AsyncSession):
        survey = await SurveyFactory.create(db_session)

        response = await _start(client, survey.id, device_type="watch")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_answers_are_upserted(self, client: AsyncClient, db_session: AsyncSession):
        survey = await SurveyFactory.create(db_session)
        session_id = (await _start(client, survey.id)).json()["session"]["id"]
        url = f"/api/responses/sessions/{session_id}/answers"

        await client.put(url, json={"question_id": "q1", "answer": 2})
        response = await client.put(url, json={"question_id": "q1", "answer": 4, "time_spent": 9})

        assert response.status_code == 200
        assert response.json()["responses"] == [
            {"question_id": "q1", "answer": 4, "time_spent": 9.0}
        ]

    @pytest.mark.asyncio
    async def test_answer_unknown_session(self, client: AsyncClient):
        response = await client.put(
            "/api/responses/sessions/9999/answers", json={"question_id": "q1", "answer": 1}
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_abandon(self, client: AsyncClient, db_session: AsyncSession):
        survey = await SurveyFactory.create(db_session)
        session_id = (await _start(client, survey.id)).json()["session"]["id"]

        response = await client.post(f"/api/responses/sessions/{session_id}/abandon")
        missing = await client.post("/api/responses/sessions/9999/abandon")

        assert response.status_code == 200
        assert response.json()["is_abandoned"] is True
        assert missing.status_code == 404


class TestSubmission:

    @pytest.mark.asyncio
    async def test_session_to_submission_flow(
        self, client: AsyncClient, db_session: AsyncSession
    ):
        """
        WHY: After submit the respondent must count once, as completed.
        """
        survey = await SurveyFactory.create(db_session)
        session_id = (await _start(client, survey.id, device_type="tablet")).json()["session"]["id"]
        await client.put(
            f"/api/responses/sessions/{session_id}/answers",
            json={"question_id": "q1", "answer": 5, "section_id": "s1"},
        )

        response = await client.post(
            "/api/responses/submit",
            json={
                "survey_id": survey.id,
                "session_id": session_id,
                "responses": [{"question_id": "q2", "answer": "Yes"}],
                "start_time": (utc_now() - timedelta(minutes=5)).isoformat(),
                "metadata": {"source": "web"},
            },
            headers={"User-Agent": "Mozilla/5.0 (iPhone) Mobile"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["created"] is True
        submitted = body["response"]
        assert submitted["respondent_id"] == "r1"
        assert submitted["completed"] is True
        assert [item["question_id"] for item in submitted["responses"]] == ["q1", "q2"]
        assert submitted["completion_time"] >= 300
        # The session's device wins over the user agent
        assert submitted["metadata"]["device_type"] == "tablet"
        assert submitted["metadata"]["source"] == "web"
        assert "ip_address" in submitted["metadata"]

        remaining = await IncompleteSurveyResponseDAO(db_session).find(
            survey_ids=[survey.id], include_abandoned=True
        )
        assert remaining == []

    @pytest.mark.asyncio
    async def test_repeated_submit_is_replayed(
        self, client: AsyncClient, db_session: AsyncSession
    ):
        survey = await SurveyFactory.create(db_session)
        session_id = (await _start(client, survey.id)).json()["session"]["id"]
        payload = {"survey_id": survey.id, "session_id": session_id, "respondent_id": "r1"}

        first = await client.post("/api/responses/submit", json=payload)
        second = await client.post("/api/responses/submit", json=payload)

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()["created"] is False
        assert second.json()["response"]["id"] == first.json()["response"]["id"]

    @pytest.mark.asyncio
    async def test_submit_attributes_authenticated_user(
        self, client: AsyncClient, db_session: AsyncSession, test_respondent, respondent_headers
    ):
        survey = await SurveyFactory.create(db_session)

        response = await client.post(
            "/api/responses/submit",
            json={"survey_id": survey.id, "responses": [{"question_id": "q1", "answer": 3}]},
            headers={**respondent_headers, "User-Agent": "Mozilla/5.0 (iPhone) Mobile"},
        )

        submitted = response.json()["response"]
        assert submitted["user_id"] == test_respondent.id
        assert submitted["respondent_id"].startswith("anon-")
        assert submitted["metadata"]["device_type"] == "mobile"

    @pytest.mark.asyncio
    async def test_submit_validation(self, client: AsyncClient, db_session: AsyncSession):
        survey = await SurveyFactory.create(db_session)

        bad_progress = await client.post(
            "/api/responses/submit", json={"survey_id": survey.id, "progress": 150}
        )
        bad_answer = await client.post(
            "/api/responses/submit",
            json={"survey_id": survey.id, "responses": [{"question_id": "", "answer": 1}]},
        )

        assert bad_progress.status_code == 400
        assert bad_answer.status_code == 400
        assert bad_answer.json()["details"]["errors"]


class TestAdministrativeCorrections:

    @pytest.mark.asyncio
    async def test_admin_get_update_delete(
        self, client: AsyncClient, db_session: AsyncSession, admin_headers
    ):
        survey = await SurveyFactory.create(db_session)
        record = await ResponseFactory.create(db_session, survey, completion_time=60)
        url = f"/api/responses/{record.id}"

        fetched = await client.get(url, headers=admin_headers)
        updated = await client.patch(
            url,
            json={
                "progress": 80,
                "start_time": (record.end_time - timedelta(minutes=2)).isoformat(),
            },
            headers=admin_headers,
        )
        deleted = await client.delete(url, headers=admin_headers)
        gone = await client.get(url, headers=admin_headers)

        assert fetched.status_code == 200
        assert updated.status_code == 200
        assert updated.json()["progress"] == 80
        assert updated.json()["completion_time"] == 120.0
        assert deleted.status_code == 204
        assert gone.status_code == 404

    @pytest.mark.asyncio
    async def test_analyst_cannot_correct(
        self, client: AsyncClient, db_session: AsyncSession, analyst_headers
    ):
        survey = await SurveyFactory.create(db_session)
        record = await ResponseFactory.create(db_session, survey)

        patched = await client.patch(
            f"/api/responses/{record.id}", json={"progress": 10}, headers=analyst_headers
        )
        deleted = await client.delete(f"/api/responses/{record.id}", headers=analyst_headers)

        assert patched.status_code == 403
        assert deleted.status_code == 403

    @pytest.mark.asyncio
    async def test_anonymous_cannot_read(self, client: AsyncClient, db_session: AsyncSession):
        survey = await SurveyFactory.create(db_session)
        record = await ResponseFactory.create(db_session, survey)

        response = await client.get(f"/api/responses/{record.id}")

        assert response.status_code == 401
