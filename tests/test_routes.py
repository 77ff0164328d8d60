"""
HTTP surface: auth, chat/prompt CRUD, composer and sidebar actions.
"""

from conftest import ALICE, make_headers


class TestAuth:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_requests_without_token_are_rejected(self, client):
        assert client.get("/chat/").status_code in (401, 403)
        assert client.get("/composer/").status_code in (401, 403)

    def test_bad_token_is_rejected(self, client):
        response = client.get("/chat/", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_session_shape(self, client, auth_headers, database):
        response = client.get("/auth/session", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["email"] == ALICE
        assert body["user"]["name"] == "alice"
        assert body["expires"]
        assert database["users"].find_one({"_id": ALICE}) is not None

    def test_logout_tears_down_tab_state(self, client, auth_headers):
        client.put("/composer/draft", json={"text": "half typed"}, headers=auth_headers)

        response = client.post("/auth/logout", headers=auth_headers)

        assert response.json()["closed_tabs"] == 1
        assert client.get("/composer/", headers=auth_headers).json()["draft"] == ""


class TestChatRoutes:

    def test_create_list_rename_delete(self, client, auth_headers):
        created = client.post("/chat/", headers=auth_headers)
        assert created.status_code == 201
        chat_id = created.json()["id"]

        listed = client.get("/chat/", headers=auth_headers).json()
        assert [c["id"] for c in listed] == [chat_id]

        renamed = client.put(f"/chat/{chat_id}", json={"title": "Recipes"}, headers=auth_headers)
        assert renamed.json()["title"] == "Recipes"

        assert client.delete(f"/chat/{chat_id}", headers=auth_headers).status_code == 200
        assert client.get(f"/chat/{chat_id}", headers=auth_headers).status_code == 404

    def test_other_users_chat_is_not_found(self, client, auth_headers, bob_headers):
        chat_id = client.post("/chat/", headers=auth_headers).json()["id"]

        assert client.get(f"/chat/{chat_id}", headers=bob_headers).status_code == 404
        assert client.get(f"/chat/{chat_id}/messages", headers=bob_headers).status_code == 404
        assert client.delete(f"/chat/{chat_id}", headers=bob_headers).status_code == 404

    def test_messages_of_missing_chat(self, client, auth_headers):
        assert client.get("/chat/nope/messages", headers=auth_headers).status_code == 404


class TestPromptRoutes:

    def test_create_with_defaults(self, client, auth_headers):
        response = client.post("/prompt/", json={"title": "", "prompt": ""}, headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["title"] == "New Prompt"
        assert response.json()["prompt"] == ""

    def test_update_and_delete(self, client, auth_headers):
        prompt_id = client.post("/prompt/", json={"title": "A", "prompt": "x"}, headers=auth_headers).json()["id"]

        updated = client.put(f"/prompt/{prompt_id}", json={"prompt": "y {{text}}"}, headers=auth_headers)
        assert updated.json()["prompt"] == "y {{text}}"

        assert client.delete(f"/prompt/{prompt_id}", headers=auth_headers).status_code == 200
        assert client.get("/prompt/", headers=auth_headers).json() == []


class TestComposerRoutes:

    def _chat(self, client, headers) -> str:
        return client.post("/chat/", headers=headers).json()["id"]

    def test_hello_ctrl_enter(self, client, auth_headers, app_store, completion_clients):
        chat_id = self._chat(client, auth_headers)
        client.put("/composer/draft", json={"text": "Hello"}, headers=auth_headers)

        response = client.post(
            "/composer/keydown",
            json={"chatId": chat_id, "key": "Enter", "ctrl": True},
            headers=auth_headers,
        )

        assert response.status_code == 202
        assert response.json()["sent"] is True
        messages = app_store.list_messages(ALICE, chat_id)
        assert [(m.content, m.role) for m in messages] == [("Hello", "user")]
        assert response.json()["messageId"] == messages[0].id
        assert client.get("/composer/", headers=auth_headers).json()["draft"] == ""
        assert [c["prompt"] for c in completion_clients[0].calls] == ["Hello"]
        assert completion_clients[0].calls[0]["chatId"] == chat_id

    def test_spaces_only(self, client, auth_headers, app_store, completion_clients):
        chat_id = self._chat(client, auth_headers)
        client.put("/composer/draft", json={"text": "   "}, headers=auth_headers)

        response = client.post(
            "/composer/keydown",
            json={"chatId": chat_id, "key": "Enter", "ctrl": True},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["sent"] is False
        assert app_store.list_messages(ALICE, chat_id) == []
        assert completion_clients[0].calls == []
        assert client.get("/composer/", headers=auth_headers).json()["draft"] == "   "

    def test_submit_endpoint(self, client, auth_headers, app_store):
        chat_id = self._chat(client, auth_headers)
        client.put("/composer/draft", json={"text": "Explain SSE"}, headers=auth_headers)

        response = client.post(f"/composer/{chat_id}/submit", headers=auth_headers)

        assert response.status_code == 202
        assert app_store.list_messages(ALICE, chat_id)[0].content == "Explain SSE"

    def test_tabs_have_separate_drafts(self, client):
        first = make_headers(ALICE, tab="one")
        second = make_headers(ALICE, tab="two")

        client.put("/composer/draft", json={"text": "in tab one"}, headers=first)

        assert client.get("/composer/", headers=first).json()["draft"] == "in tab one"
        assert client.get("/composer/", headers=second).json()["draft"] == ""

    def test_settings_update_and_range_check(self, client, auth_headers):
        response = client.patch("/composer/settings", json={"temperature": 1.1, "topP": 0.4}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["temperature"] == 1.1
        assert response.json()["topP"] == 0.4

        rejected = client.patch("/composer/settings", json={"temperature": 3}, headers=auth_headers)
        assert rejected.status_code == 422
        assert client.get("/composer/", headers=auth_headers).json()["settings"]["temperature"] == 1.1

    def test_model_selection(self, client, auth_headers):
        client.put("/composer/model", json={"model": "gemini-1.5-pro"}, headers=auth_headers)

        assert client.get("/composer/", headers=auth_headers).json()["model"] == "gemini-1.5-pro"

    def test_apply_prompt_template(self, client, auth_headers):
        prompt_id = client.post(
            "/prompt/", json={"title": "Fix", "prompt": "Fix the grammar: {{text}}"}, headers=auth_headers
        ).json()["id"]
        client.put("/composer/draft", json={"text": "me go home"}, headers=auth_headers)

        response = client.post(f"/composer/prompt/{prompt_id}/apply", headers=auth_headers)

        assert response.json()["draft"] == "Fix the grammar: me go home"

    def test_stop_without_completion(self, client, auth_headers):
        assert client.post("/composer/stop", headers=auth_headers).json() == {"stopped": False}

    def test_dismiss_unknown_notification(self, client, auth_headers):
        assert client.delete("/composer/notifications/nope", headers=auth_headers).status_code == 404


class TestSidebarRoutes:

    def test_new_chat_navigates_to_it(self, client, auth_headers, app_store):
        response = client.post("/ui/chats/new", headers=auth_headers)

        assert response.status_code == 201
        chat = response.json()["chat"]
        assert chat["title"] == ""
        assert chat["pinned"] is False
        assert response.headers["Location"] == f"/chat/{chat['id']}"
        assert response.json()["location"] == f"/chat/{chat['id']}"
        assert len(app_store.list_chats(ALICE)) == 1

    def test_delete_chat_cancel_deletes_nothing(self, client, auth_headers, app_store):
        chat_id = client.post("/chat/", headers=auth_headers).json()["id"]
        modal_id = client.post(f"/ui/chats/{chat_id}/delete", headers=auth_headers).json()["id"]

        response = client.post(f"/ui/modals/{modal_id}/cancel", headers=auth_headers)

        assert response.status_code == 200
        assert app_store.get_chat(ALICE, chat_id).id == chat_id
        assert client.get("/composer/", headers=auth_headers).json()["modals"] == []
        assert client.post(f"/ui/modals/{modal_id}/accept", headers=auth_headers).status_code == 404
        assert app_store.get_chat(ALICE, chat_id).id == chat_id

    def test_delete_chat_click_outside(self, client, auth_headers, app_store):
        chat_id = client.post("/chat/", headers=auth_headers).json()["id"]
        modal_id = client.post(f"/ui/chats/{chat_id}/delete", headers=auth_headers).json()["id"]

        client.post(f"/ui/modals/{modal_id}/dismiss", headers=auth_headers)

        assert len(app_store.list_chats(ALICE)) == 1

    def test_delete_chat_accept(self, client, auth_headers, app_store):
        chat_id = client.post("/chat/", headers=auth_headers).json()["id"]
        modal_id = client.post(f"/ui/chats/{chat_id}/delete", headers=auth_headers).json()["id"]

        response = client.post(f"/ui/modals/{modal_id}/accept", headers=auth_headers)

        assert response.status_code == 200
        assert app_store.list_chats(ALICE) == []

    def test_new_prompt_with_empty_fields(self, client, auth_headers, app_store):
        modal = client.post("/ui/prompts/new", headers=auth_headers).json()
        assert modal["prompt_body"] == "{{text}}"

        client.patch(f"/ui/modals/{modal['id']}", json={"title": "", "prompt": ""}, headers=auth_headers)
        response = client.post(f"/ui/modals/{modal['id']}/accept", headers=auth_headers)

        assert response.json()["result"]["title"] == "New Prompt"
        assert response.json()["result"]["prompt"] == ""
        prompts = app_store.list_prompts(ALICE)
        assert [(p.title, p.prompt) for p in prompts] == [("New Prompt", "")]

    def test_edit_prompt(self, client, auth_headers, app_store):
        prompt = app_store.create_prompt(ALICE, "Old", "old body")
        modal = client.post(f"/ui/prompts/{prompt.id}/edit", headers=auth_headers).json()
        assert modal["prompt_title"] == "Old"

        client.patch(f"/ui/modals/{modal['id']}", json={"title": "New title"}, headers=auth_headers)
        client.post(f"/ui/modals/{modal['id']}/accept", headers=auth_headers)

        assert app_store.get_prompt(ALICE, prompt.id).title == "New title"
        assert app_store.get_prompt(ALICE, prompt.id).prompt == "old body"

    def test_delete_prompt_confirmation(self, client, auth_headers, app_store):
        prompt = app_store.create_prompt(ALICE, "Temp", "x")
        modal_id = client.post(f"/ui/prompts/{prompt.id}/delete", headers=auth_headers).json()["id"]

        client.post(f"/ui/modals/{modal_id}/accept", headers=auth_headers)

        assert app_store.list_prompts(ALICE) == []

    def test_unknown_modal_action(self, client, auth_headers):
        assert client.post("/ui/modals/nope/accept", headers=auth_headers).status_code == 404
        assert client.post("/ui/modals/nope/explode", headers=auth_headers).status_code == 422
