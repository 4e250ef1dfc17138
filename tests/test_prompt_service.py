from apps.api.services.prompt_service import PromptService


def test_system_prompt_asks_for_onomatopoeia_only():
    p = PromptService()
    system = p.system_prompt()

    assert "onomatopoeia" in system
    assert "James Joyce" in system
    assert "cat - Mrkgnao" in system
    assert "no additional text" in system


def test_inline_joins_system_and_user_message():
    p = PromptService()

    assert p.inline(system="SYS", user="rain on a tin roof") == "SYS\n\nUser: rain on a tin roof"
