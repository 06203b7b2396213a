"""Small TwiML string builders for voice webhooks."""

from __future__ import annotations

from xml.sax.saxutils import escape

from config.settings import Settings


def attr(value: str) -> str:
    return escape(value, {'"': "&quot;"})


def say(text: str, settings: Settings) -> str:
    return (
        f"<Say voice=\"{attr(settings.twilio_say_voice)}\" "
        f"language=\"{attr(settings.twilio_say_language)}\">{escape(text)}</Say>"
    )


def document(*verbs: str) -> str:
    return "<?xml version=\"1.0\" encoding=\"UTF-8\"?><Response>" + "".join(verbs) + "</Response>"


def inbound_greeting(*, caller_name: str, action_url: str, settings: Settings) -> str:
    return document(
        say(
            f"Hi {caller_name}, you have reached {settings.agent_name}. "
            "I will analyze your request and route it to the right person.",
            settings,
        ),
        f"<Gather input=\"speech\" action=\"{attr(action_url)}\" method=\"POST\" speechTimeout=\"auto\">",
        say("Please describe how we can help you today.", settings),
        "</Gather>",
        "<Pause length=\"1\"/>",
        say("Thank you. Someone will be with you shortly.", settings),
        "<Hangup/>",
    )


def handoff(settings: Settings) -> str:
    if settings.twilio_workflow_sid:
        return document(
            say("Thanks! Routing you to a specialist now.", settings),
            "<Pause length=\"1\"/>",
            f"<Enqueue workflowSid=\"{attr(settings.twilio_workflow_sid)}\"/>",
        )
    return document(
        say("Thanks! Someone will follow up with you shortly.", settings),
        "<Hangup/>",
    )


def outbound_script(
    *,
    contact_name: str,
    prompt: str,
    recording_callback: str | None,
    settings: Settings,
) -> str:
    record_attrs = 'playBeep="true" recordingStatusCallbackMethod="POST"'
    if recording_callback:
        record_attrs += f' recordingStatusCallback="{attr(recording_callback)}"'
    return document(
        say(f"Hello {contact_name or 'there'}, this is {settings.agent_name}. {prompt}", settings),
        "<Pause length=\"1\"/>",
        say("If you would like to speak with a human agent, please stay on the line.", settings),
        f"<Record {record_attrs}/>",
    )
