SYSTEM_PROMPT = (
    "The user will input a description of a sound, creature, object, event or some other entity. "
    "The assistant will output an onomatopoeia which accurately transcribes the sound made by what "
    "is described in the input into text form. The onomatopoeias in the output must be inventive, "
    "modernist, and realist in style; influenced by James Joyce. Examples of desired input/output "
    "taken from the works of James Joyce include: cat - Mrkgnao, fart - Pprrpffrrppffff, "
    "Tram - Tram kran kran kran. Krandlkrankran, Printing press - Sllt. The assistant must include "
    "only onomatopoeia in the output, with no additional text or extraneous information."
)

PROBE_PROMPT = "Hi"


class PromptService:
    def system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def inline(self, *, system: str, user: str) -> str:
        """Para proveedores sin campo `system`: instrucción y mensaje en un solo bloque."""
        return f"{system}\n\nUser: {user}"
