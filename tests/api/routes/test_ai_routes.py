"""
Tests for AI-assisted rule generation.
"""
import json

RULES = {
    "logicalOperator": "AND",
    "conditions": [{"field": "visitCount", "operator": "LESS_THAN", "value": 3, "dataType": "number"}],
    "groups": [],
}


class TestSegmentRules:
    def test_returns_rules(self, client, llm):
        llm.answers = [json.dumps(RULES)]

        response = client.post("/ai/segment-rules", json={"prompt": "customers with fewer than three visits"})

        assert response.status_code == 200
        assert response.json()["rules"]["conditions"][0]["operator"] == "LESS_THAN"

    def test_short_prompt_is_400(self, client):
        assert client.post("/ai/segment-rules", json={"prompt": "vips"}).status_code == 400

    def test_unusable_output_is_502(self, client, llm):
        llm.answers = ["no idea"]

        response = client.post("/ai/segment-rules", json={"prompt": "customers with fewer than three visits"})

        assert response.status_code == 502

    def test_declined_prompt_is_400(self, client, llm):
        llm.answers = ['{"error": "Could not translate prompt accurately."}']

        response = client.post("/ai/segment-rules", json={"prompt": "tell me a story about a dragon"})

        assert response.status_code == 400


class TestSuggestMessages:
    def test_returns_suggestions(self, client, llm):
        llm.answers = ['["Hi {{name}}, we miss you!", "Welcome back, {{name}}"]']

        response = client.post("/ai/suggest-messages", json={
            "objective": "win back customers inactive for months",
            "tone": "friendly",
            "messageCount": 2,
        })

        assert response.status_code == 200
        assert response.json()["suggestions"] == ["Hi {{name}}, we miss you!", "Welcome back, {{name}}"]
        assert "friendly" in llm.prompts[0]["system"]

    def test_defaults_to_three_neutral_suggestions(self, client, llm):
        llm.answers = ['["a", "b", "c"]']

        response = client.post("/ai/suggest-messages", json={"objective": "announce the summer sale"})

        assert response.status_code == 200
        assert "neutral" in llm.prompts[0]["system"]
        assert "Write 3 distinct" in llm.prompts[0]["system"]

    def test_short_objective_is_400(self, client):
        assert client.post("/ai/suggest-messages", json={"objective": "sale"}).status_code == 400

    def test_unknown_tone_is_400(self, client):
        response = client.post("/ai/suggest-messages", json={"objective": "announce the summer sale", "tone": "angry"})

        assert response.status_code == 400

    def test_message_count_out_of_range_is_400(self, client):
        for count in (0, 6):
            response = client.post("/ai/suggest-messages", json={
                "objective": "announce the summer sale",
                "messageCount": count,
            })
            assert response.status_code == 400

    def test_unusable_output_is_502(self, client, llm):
        llm.answers = ["no idea"]

        response = client.post("/ai/suggest-messages", json={"objective": "announce the summer sale"})

        assert response.status_code == 502

    def test_no_suggestions_is_400(self, client, llm):
        llm.answers = ["[]"]

        response = client.post("/ai/suggest-messages", json={"objective": "announce the summer sale"})

        assert response.status_code == 400
