import inspect
import json
import unittest
from datetime import date

import httpx

from tribe.modules.assistant.llm import (
    AssistantLLM, PLACEHOLDER_RESPONSES, build_chat_messages, build_system_prompt,
    child_age_years, generate_thread_title, get_assistant_llm, placeholder_response
)
from tribe.modules.assistant import routes as assistant_routes
from tribe.main import app
from tests.base import API, ApiTestCase


def first(options):
    return options[0]


class AssistantHelperTests(unittest.TestCase):
    def test_thread_title(self):
        self.assertEqual(generate_thread_title("Sleep help"), "Sleep help")
        self.assertEqual(
            generate_thread_title("How do I help my toddler sleep through the whole night"),
            "How do I help my toddler sleep through..."
        )

    def test_child_age(self):
        self.assertEqual(child_age_years("2020-06-01", today=date(2024, 5, 31)), 3)
        self.assertEqual(child_age_years("2020-06-01", today=date(2024, 6, 2)), 4)
        self.assertIsNone(child_age_years(None))
        self.assertIsNone(child_age_years("not a date"))

    def test_system_prompt_mentions_children(self):
        prompt = build_system_prompt(
            "Smith", [{"name": "Maya", "dob": "2021-01-10"}, {"name": "Leo", "dob": None}], today=date(2024, 1, 11)
        )
        self.assertIn("the Smith family", prompt)
        self.assertIn("Maya (3 years old), Leo", prompt)
        self.assertIn("No children information provided", build_system_prompt("Smith", []))

    def test_chat_messages_map_roles(self):
        messages = build_chat_messages(
            "system", [{"author": "parent", "content": "hi"}, {"author": "assistant", "content": "hello"}], "next"
        )
        self.assertEqual([m["role"] for m in messages], ["system", "user", "assistant", "user"])
        self.assertEqual(messages[-1]["content"], "next")

    def test_placeholder(self):
        one = placeholder_response([{"name": "Maya"}], choose=first)
        self.assertIn("I see you have 1 child: Maya.", one)
        two = placeholder_response([{"name": "Maya"}, {"name": "Leo"}], choose=first)
        self.assertIn("I see you have 2 children: Maya, Leo.", two)
        self.assertEqual(placeholder_response([], choose=first), PLACEHOLDER_RESPONSES[0].format(children_info=""))


class AssistantLLMTests(unittest.TestCase):
    def test_posts_chat_completion(self):
        captured = {}

        def handler(request):
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "Try a bedtime routine."}}]})

        llm = AssistantLLM(api_key="secret", api_url="https://llm.test/v1/chat", model="m-1",
                           transport=httpx.MockTransport(handler))
        reply = llm.generate_reply("Sleep?", [{"author": "parent", "content": "hi"}], [], "Smith")

        self.assertEqual(reply, "Try a bedtime routine.")
        self.assertEqual(captured["auth"], "Bearer secret")
        self.assertEqual(captured["body"]["model"], "m-1")
        self.assertEqual([m["role"] for m in captured["body"]["messages"]], ["system", "user", "user"])

    def test_empty_completion(self):
        llm = AssistantLLM(api_key="secret", transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"choices": []})
        ))
        self.assertIn("encountered an error", llm.complete([]))

    def test_server_error_falls_back_to_placeholder(self):
        llm = AssistantLLM(api_key="secret", transport=httpx.MockTransport(
            lambda request: httpx.Response(500, json={"error": "boom"})
        ))
        reply = llm.generate_reply("Sleep?", [], [{"name": "Maya"}], "Smith")
        self.assertIn("I see you have 1 child: Maya.", reply)

    def test_non_object_payload_falls_back_to_placeholder(self):
        llm = AssistantLLM(api_key="secret", transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json=["not", "an", "object"])
        ))
        reply = llm.generate_reply("Sleep?", [], [{"name": "Maya"}], "Smith")
        self.assertIn("I see you have 1 child: Maya.", reply)

    def test_unconfigured_never_calls_out(self):
        def handler(request):
            raise AssertionError("no request expected")

        llm = AssistantLLM(api_key="", transport=httpx.MockTransport(handler))
        self.assertFalse(llm.configured)
        self.assertIn("parenting", llm.generate_reply("hi", [], [], "Smith").lower())


class AssistantApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.requests = []

        def handler(request):
            body = json.loads(request.content)
            self.requests.append(body)
            return httpx.Response(200, json={"choices": [{"message": {"content": f"reply {len(self.requests)}"}}]})

        self.llm = AssistantLLM(api_key="k", transport=httpx.MockTransport(handler))
        app.dependency_overrides[get_assistant_llm] = lambda: self.llm

        self.tree = self.create_tree()
        self.add_tree_member(self.tree["id"], "bob", role="admin")
        self.add_tree_member(self.tree["id"], "carol", role="member")
        self.db.add("children", tree_id=self.tree["id"], name="Maya", dob="2021-01-10")
        self.act_as("alice")

    def start_thread(self, message="How much should a toddler sleep?"):
        response = self.client.post(f"{API}/assistant/threads", json={"tree_id": self.tree["id"], "message": message})
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_model_calling_routes_run_in_threadpool(self):
        self.assertFalse(inspect.iscoroutinefunction(assistant_routes.create_thread))
        self.assertFalse(inspect.iscoroutinefunction(assistant_routes.send_message))

    def test_create_thread_answers_first_message(self):
        thread = self.start_thread()
        self.assertEqual(thread["title"], "How much should a toddler sleep?")
        self.assertEqual([(m["author"], m["content"]) for m in thread["messages"]], [
            ("parent", "How much should a toddler sleep?"),
            ("assistant", "reply 1"),
        ])
        system = self.requests[0]["messages"][0]["content"]
        self.assertIn("Smith Family", system)
        self.assertIn("Maya", system)

    def test_follow_up_sends_history_once(self):
        thread = self.start_thread("First question")
        response = self.client.post(f"{API}/assistant/threads/{thread['id']}/messages", json={"content": "Second"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual([m["content"] for m in response.json()["messages"]], ["Second", "reply 2"])

        sent = self.requests[1]["messages"]
        self.assertEqual([(m["role"], m["content"]) for m in sent[1:]], [
            ("user", "First question"),
            ("assistant", "reply 1"),
            ("user", "Second"),
        ])

        detail = self.client.get(f"{API}/assistant/threads/{thread['id']}").json()
        self.assertEqual(len(detail["messages"]), 4)

    def test_admin_allowed_member_denied(self):
        self.act_as("bob")
        self.start_thread()
        self.act_as("carol")
        response = self.client.post(f"{API}/assistant/threads", json={"tree_id": self.tree["id"], "message": "hi"})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.client.get(f"{API}/assistant/threads", params={"tree_id": self.tree["id"]}).status_code, 403)

    def test_list_most_recently_active_first(self):
        older = self.start_thread("older")
        newer = self.start_thread("newer")
        for row in self.db.rows("assistant_threads"):
            if row["id"] == older["id"]:
                row["updated_at"] = "2999-01-01T00:00:00+00:00"
        threads = self.client.get(f"{API}/assistant/threads", params={"tree_id": self.tree["id"]}).json()
        self.assertEqual([t["id"] for t in threads], [older["id"], newer["id"]])

    def test_only_creator_deletes(self):
        thread = self.start_thread()
        self.act_as("bob")
        self.assertEqual(self.client.delete(f"{API}/assistant/threads/{thread['id']}").status_code, 403)
        self.act_as("alice")
        self.assertEqual(self.client.delete(f"{API}/assistant/threads/{thread['id']}").status_code, 204)
        self.assertEqual(self.db.rows("assistant_messages"), [])
        self.assertEqual(self.client.get(f"{API}/assistant/threads/{thread['id']}").status_code, 404)


if __name__ == "__main__":
    unittest.main()
