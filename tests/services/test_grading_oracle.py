import json

import httpx
import pytest

from app.services.grading_oracle import (
    GradingOracleError, OpenRouterGradingOracle, extract_json_object, to_review_result
)


def completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def make_oracle(handler, api_key="test-key") -> OpenRouterGradingOracle:
    return OpenRouterGradingOracle(
        api_key=api_key,
        base_url="https://openrouter.test/api/v1",
        model="test/model",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


class TestExtractJsonObject:
    def test_bare_object(self):
        assert extract_json_object('{"score": 80}') == {"score": 80}

    def test_fenced_object(self):
        content = 'Here is the grade:\n```json\n{"score": 64, "strengths": []}\n```'
        assert extract_json_object(content)["score"] == 64

    def test_object_embedded_in_prose(self):
        assert extract_json_object('Result: {"score": 55} Thanks!') == {"score": 55}

    @pytest.mark.parametrize("content", ["", "no json here", "[1, 2, 3]", "{not json}"])
    def test_no_object(self, content):
        with pytest.raises(GradingOracleError):
            extract_json_object(content)


class TestToReviewResult:
    @pytest.mark.parametrize("raw,expected", [
        (150, 100),
        (-5, 0),
        (72.9, 72),
        ("81", 81),
        ("abc", 0),
        (None, 0),
    ])
    def test_score_is_clamped(self, raw, expected):
        assert to_review_result({"score": raw}).score == expected

    def test_lists_are_capped_and_cleaned(self):
        result = to_review_result({
            "score": 70,
            "strengths": ["a", "", None, "b", "c", "d", "e", "f"],
            "weaknesses": "not a list",
        })
        assert result.strengths == ["a", "b", "c", "d", "e"]
        assert result.weaknesses == []
        assert result.suggestions == []

    def test_camel_case_feedback_key(self):
        assert to_review_result({"score": 70, "detailedFeedback": "Nice work."}).detailed_feedback == "Nice work."


class TestOpenRouterGradingOracle:
    @pytest.mark.asyncio
    async def test_grade_posts_chat_completion(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=completion(json.dumps({
                "score": 88,
                "strengths": ["Rich vocabulary"],
                "weaknesses": ["Spacing"],
                "suggestions": ["Review 띄어쓰기"],
                "detailed_feedback": "Strong essay.",
            })))

        result = await make_oracle(handler).grade("Describe your hometown.", "제 고향은 서울입니다.")

        assert result.score == 88
        assert result.strengths == ["Rich vocabulary"]
        assert result.detailed_feedback == "Strong essay."
        assert result.system_failure is False

        request = requests[0]
        body = json.loads(request.content)
        assert request.url.path == "/api/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer test-key"
        assert body["model"] == "test/model"
        assert "Describe your hometown." in body["messages"][1]["content"]
        assert "제 고향은 서울입니다." in body["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        def handler(request):
            raise AssertionError("no request should be sent")

        with pytest.raises(GradingOracleError):
            await make_oracle(handler, api_key="").grade("prompt", "essay")

    @pytest.mark.asyncio
    async def test_error_status(self):
        def handler(request):
            return httpx.Response(503, text="upstream overloaded")

        with pytest.raises(GradingOracleError, match="503"):
            await make_oracle(handler).grade("prompt", "essay")

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(GradingOracleError):
            await make_oracle(handler).grade("prompt", "essay")

    @pytest.mark.asyncio
    async def test_unexpected_payload(self):
        def handler(request):
            return httpx.Response(200, json={"error": "no choices"})

        with pytest.raises(GradingOracleError):
            await make_oracle(handler).grade("prompt", "essay")

    @pytest.mark.asyncio
    async def test_reply_without_json(self):
        def handler(request):
            return httpx.Response(200, json=completion("I cannot grade this essay."))

        with pytest.raises(GradingOracleError):
            await make_oracle(handler).grade("prompt", "essay")
