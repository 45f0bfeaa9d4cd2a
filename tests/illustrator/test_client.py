import asyncio
from unittest.mock import AsyncMock, MagicMock, call

import pytest

from illustrator.client import (
    GENERATION_FAILED_MESSAGE,
    MISSING_PROMPT_MESSAGE,
    GenerationClient,
    user_message,
)
from illustrator.config import GenerationSettings
from illustrator.exceptions import FailureKind, TransportError

from fake_api import complete, failed, pending, submitted


@pytest.mark.asyncio
async def test_generate_image_happy_path(
    client: GenerationClient, mock_transport: AsyncMock, mock_sleep: AsyncMock
):
    """
    Two PENDING polls followed by COMPLETE resolve to the first image URL
    after exactly three attempts.
    """
    mock_transport.fetch.side_effect = [pending(), pending(), complete("X", "Y")]

    outcome = await client.generate_image("a cat in a teacup", "Cozy")

    assert outcome.succeeded
    assert outcome.image_url == "X"
    assert outcome.failure is None
    assert outcome.generation_id == "gen-1"
    assert outcome.attempts == 3

    assert mock_transport.fetch.await_count == 3
    mock_transport.fetch.assert_awaited_with("gen-1")
    assert mock_sleep.await_args_list == [call(0), call(0), call(0)]


@pytest.mark.asyncio
async def test_submission_precedes_every_poll(
    client: GenerationClient, mock_transport: AsyncMock
):
    mock_transport.fetch.side_effect = [pending(), complete("X")]

    await client.generate_image("a lighthouse", "Comic")

    called = [name for name, _, _ in mock_transport.mock_calls]
    assert called == ["submit", "fetch", "fetch"]


@pytest.mark.asyncio
async def test_submit_payload_is_decorated(
    client: GenerationClient, mock_transport: AsyncMock
):
    """The prompt is trimmed, wrapped and given the style descriptor."""
    mock_transport.fetch.return_value = complete("X")

    await client.generate_image("  a fox  ", "Cozy")

    payload = mock_transport.submit.await_args.args[0]
    assert payload.model_dump(by_alias=True) == {
        "prompt": "(a fox), ghibli studio cozy soft comfortable illustration painted style, high quality, detailed",
        "negative_prompt": "multiple cats, multiple dogs, two cats, two dogs, text, words, signature, watermark, blurry, low quality, deformed",
        "modelId": "aa77f04e-3eec-4034-9c07-d0f619684628",
        "width": 512,
        "height": 512,
        "num_images": 1,
        "guidance_scale": 7,
    }


@pytest.mark.asyncio
async def test_unknown_style_passes_through(
    client: GenerationClient, mock_transport: AsyncMock
):
    mock_transport.fetch.return_value = complete("X")

    await client.generate_image("a fox", "watercolor")

    payload = mock_transport.submit.await_args.args[0]
    assert payload.prompt == "(a fox), watercolor style, high quality, detailed"


@pytest.mark.asyncio
async def test_failed_status_stops_after_one_attempt(
    client: GenerationClient, mock_transport: AsyncMock
):
    mock_transport.fetch.side_effect = [failed(), complete("never")]

    outcome = await client.generate_image("a fox", "Comic")

    assert not outcome.succeeded
    assert outcome.failure is FailureKind.REMOTE_FAILED
    assert outcome.attempts == 1
    mock_transport.fetch.assert_awaited_once_with("gen-1")


@pytest.mark.asyncio
async def test_complete_without_images_is_a_failure(
    client: GenerationClient, mock_transport: AsyncMock
):
    mock_transport.fetch.return_value = complete()

    outcome = await client.generate_image("a fox", "Comic")

    assert outcome.failure is FailureKind.EMPTY_RESULT
    assert outcome.image_url is None
    assert mock_transport.fetch.await_count == 1


@pytest.mark.asyncio
async def test_times_out_after_attempt_budget(
    client: GenerationClient, mock_transport: AsyncMock, mock_sleep: AsyncMock
):
    mock_transport.fetch.side_effect = [pending() for _ in range(20)]

    outcome = await client.generate_image("a fox", "Animation")

    assert outcome.failure is FailureKind.TIMEOUT
    assert outcome.attempts == 15
    assert mock_transport.fetch.await_count == 15
    assert mock_sleep.await_count == 15
    assert "15 attempts" in outcome.detail


@pytest.mark.asyncio
async def test_unrecognized_status_keeps_polling(
    client: GenerationClient, mock_transport: AsyncMock
):
    mock_transport.fetch.side_effect = [
        {"generations_by_pk": {"status": "QUEUED"}},
        {"generations_by_pk": None},
        {},
        complete("X"),
    ]

    outcome = await client.generate_image("a fox", "Comic")

    assert outcome.image_url == "X"
    assert outcome.attempts == 4


@pytest.mark.asyncio
async def test_poll_transport_error_is_not_fatal(
    client: GenerationClient, mock_transport: AsyncMock
):
    mock_transport.fetch.side_effect = [
        TransportError("Generation API returned status 502", status_code=502),
        complete("X"),
    ]

    outcome = await client.generate_image("a fox", "Comic")

    assert outcome.image_url == "X"
    assert outcome.attempts == 2


@pytest.mark.asyncio
async def test_unexpected_metadata_types_do_not_hide_completion(
    client: GenerationClient, mock_transport: AsyncMock
):
    """Only status and image urls are read; odd types elsewhere are ignored."""
    mock_transport.fetch.return_value = {
        "generations_by_pk": {
            "status": "COMPLETE",
            "id": 987,
            "seed": "not-a-number",
            "imageWidth": None,
            "createdAt": 1700000000,
            "generated_images": [
                {"url": "X", "id": 123, "likeCount": "many", "nsfw": "no"}
            ],
        }
    }

    outcome = await client.generate_image("a fox", "Comic")

    assert outcome.image_url == "X"
    assert outcome.attempts == 1
    mock_transport.fetch.assert_awaited_once_with("gen-1")


@pytest.mark.parametrize(
    "images",
    [[{"nsfw": False}], [{"url": None}], [{"url": ""}, {"url": "second"}]],
)
@pytest.mark.asyncio
async def test_complete_without_first_url_is_empty_result(
    client: GenerationClient, mock_transport: AsyncMock, images
):
    mock_transport.fetch.side_effect = [
        {"generations_by_pk": {"status": "COMPLETE", "generated_images": images}},
        complete("never"),
    ]

    outcome = await client.generate_image("a fox", "Comic")

    assert outcome.failure is FailureKind.EMPTY_RESULT
    assert outcome.attempts == 1
    mock_transport.fetch.assert_awaited_once_with("gen-1")


@pytest.mark.asyncio
async def test_malformed_poll_body_is_treated_as_poll_error(
    client: GenerationClient, mock_transport: AsyncMock
):
    mock_transport.fetch.side_effect = [
        {"generations_by_pk": "maintenance"},
        complete("X"),
    ]

    outcome = await client.generate_image("a fox", "Comic")

    assert outcome.image_url == "X"
    assert outcome.attempts == 2


@pytest.mark.asyncio
async def test_poll_error_on_last_attempt_times_out(
    settings: GenerationSettings, mock_transport: AsyncMock, mock_sleep: AsyncMock
):
    """A transport failure on the final attempt ends as a timeout, not as the error."""
    short = settings.model_copy(update={"max_attempts": 3})
    client = GenerationClient(settings=short, transport=mock_transport, sleep=mock_sleep)
    mock_transport.fetch.side_effect = [
        pending(),
        pending(),
        TransportError("Network error", status_code=503),
    ]

    outcome = await client.generate_image("a fox", "Comic")

    assert outcome.failure is FailureKind.TIMEOUT
    assert outcome.attempts == 3
    assert mock_transport.fetch.await_count == 3


@pytest.mark.asyncio
async def test_submission_transport_error(
    client: GenerationClient, mock_transport: AsyncMock
):
    mock_transport.submit.side_effect = TransportError(
        "Generation API returned status 401",
        status_code=401,
        payload={"error": "Invalid API key"},
    )

    outcome = await client.generate_image("a fox", "Comic")

    assert outcome.failure is FailureKind.SUBMISSION
    assert outcome.remote_payload == {"error": "Invalid API key"}
    assert outcome.attempts == 0
    mock_transport.submit.assert_awaited_once()
    mock_transport.fetch.assert_not_awaited()


@pytest.mark.asyncio
async def test_unexpected_submission_error_is_reported(
    client: GenerationClient, mock_transport: AsyncMock
):
    mock_transport.submit.side_effect = RuntimeError("socket closed")

    outcome = await client.generate_image("a fox", "Comic")

    assert outcome.failure is FailureKind.SUBMISSION
    assert "socket closed" in outcome.detail
    mock_transport.fetch.assert_not_awaited()


@pytest.mark.parametrize(
    "response",
    [{"sdGenerationJob": {}}, {"sdGenerationJob": None}, {}, {"sdGenerationJob": "oops"}],
)
@pytest.mark.asyncio
async def test_missing_generation_id_skips_polling(
    client: GenerationClient, mock_transport: AsyncMock, mock_sleep: AsyncMock, response
):
    mock_transport.submit.return_value = response

    outcome = await client.generate_image("a fox", "Comic")

    assert outcome.failure is FailureKind.SUBMISSION
    assert outcome.remote_payload == response
    mock_transport.fetch.assert_not_awaited()
    mock_sleep.assert_not_awaited()


@pytest.mark.parametrize("prompt", ["", "   ", "\n\t"])
@pytest.mark.asyncio
async def test_empty_prompt_short_circuits(
    client: GenerationClient,
    mock_transport: AsyncMock,
    mock_presenter: MagicMock,
    prompt: str,
):
    outcome = await client.generate_image(prompt, "Cozy")

    assert outcome.failure is FailureKind.MISSING_PROMPT
    assert mock_transport.mock_calls == []
    mock_presenter.present_validation_error.assert_called_once_with(
        FailureKind.MISSING_PROMPT
    )


@pytest.mark.parametrize("api_key", [None, "", "   "])
@pytest.mark.asyncio
async def test_missing_api_key_fails_without_network(
    mock_transport: AsyncMock, mock_presenter: MagicMock, api_key
):
    settings = GenerationSettings(api_key=api_key, _env_file=None)
    client = GenerationClient(
        settings=settings, transport=mock_transport, presenter=mock_presenter
    )

    outcome = await client.generate_image("a fox", "Cozy")

    assert outcome.failure is FailureKind.CONFIGURATION
    assert mock_transport.mock_calls == []
    mock_presenter.present_validation_error.assert_not_called()


@pytest.mark.asyncio
async def test_generate_image_url(client: GenerationClient, mock_transport: AsyncMock):
    mock_transport.fetch.return_value = complete("https://cdn.leonardo.ai/x.png")
    assert (
        await client.generate_image_url("a fox", "Comic")
        == "https://cdn.leonardo.ai/x.png"
    )

    mock_transport.fetch.return_value = failed()
    assert await client.generate_image_url("a fox", "Comic") is None


@pytest.mark.asyncio
async def test_concurrent_calls_are_independent(
    client: GenerationClient, mock_transport: AsyncMock
):
    mock_transport.submit.side_effect = [submitted("gen-a"), submitted("gen-b")]
    mock_transport.fetch.side_effect = lambda generation_id: complete(
        f"https://img/{generation_id}.png"
    )

    first, second = await asyncio.gather(
        client.generate_image("a fox", "Comic"),
        client.generate_image("a fox", "Comic"),
    )

    assert mock_transport.submit.await_count == 2
    assert {first.image_url, second.image_url} == {
        "https://img/gen-a.png",
        "https://img/gen-b.png",
    }
    assert first.generation_id != second.generation_id


@pytest.mark.asyncio
async def test_context_manager_closes_only_owned_transport(
    settings: GenerationSettings, mock_transport: AsyncMock
):
    async with GenerationClient(settings=settings, transport=mock_transport):
        pass
    mock_transport.aclose.assert_not_awaited()

    owned = GenerationClient(settings=settings)
    transport = owned._get_transport()
    async with owned:
        pass
    assert transport._client.is_closed


def test_user_message_for_each_failure():
    from illustrator.models import GenerationOutcome

    assert user_message(GenerationOutcome.success("X")) is None
    assert (
        user_message(GenerationOutcome(failure=FailureKind.MISSING_PROMPT))
        == MISSING_PROMPT_MESSAGE
    )
    for kind in FailureKind:
        if kind is FailureKind.MISSING_PROMPT:
            continue
        assert user_message(GenerationOutcome(failure=kind)) == GENERATION_FAILED_MESSAGE
