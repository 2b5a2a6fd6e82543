# pylint: disable=missing-module-docstring,missing-function-docstring
from context.transcript import InterviewTranscript


def test_fragments_from_the_same_speaker_are_merged() -> None:
    transcript = InterviewTranscript()

    transcript.append("agent", "Hello, ")
    transcript.append("agent", "introduce yourself.")
    transcript.append("user", "I am ")
    transcript.append("user", "Sara.")
    transcript.append("agent", "Thanks.")

    assert len(transcript) == 3
    assert transcript.as_text() == (
        "Interviewer: Hello, introduce yourself.\n"
        "Candidate: I am Sara.\n"
        "Interviewer: Thanks."
    )


def test_empty_fragments_are_ignored() -> None:
    transcript = InterviewTranscript()

    transcript.append("user", "")

    assert len(transcript) == 0
    assert transcript.as_text() == ""


def test_oldest_utterances_are_dropped_past_the_bound() -> None:
    transcript = InterviewTranscript(max_chars=10)

    transcript.append("agent", "aaaa")
    transcript.append("user", "bbbb")
    transcript.append("agent", "cccc")

    assert [u.text for u in transcript.entries] == ["bbbb", "cccc"]


def test_single_oversized_utterance_keeps_its_tail() -> None:
    transcript = InterviewTranscript(max_chars=5)

    transcript.append("user", "0123456789")

    assert [u.text for u in transcript.entries] == ["56789"]
