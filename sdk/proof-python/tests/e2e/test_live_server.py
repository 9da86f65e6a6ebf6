import pytest

from proof_sdk import GenerationRequest, ProofClient

from .conftest import requires_model_server


@pytest.mark.e2e
@requires_model_server
def test_ensure_started_and_list():
    client = ProofClient()
    client.ensure_started()
    assert client.is_running()
    assert isinstance(client.list_models(), list)


@pytest.mark.e2e
@requires_model_server
def test_streaming_matches_model_output(small_model):
    client = ProofClient()
    client.ensure_started()
    if small_model not in {model.name for model in client.list_models()}:
        pytest.skip(f"{small_model} is not pulled on the local server")

    events = []
    client.generate_streaming(GenerationRequest(model=small_model, prompt="Count to three."), events.append)
    assert events[-1].kind == "done"
    assert [event.kind for event in events].count("done") == 1
