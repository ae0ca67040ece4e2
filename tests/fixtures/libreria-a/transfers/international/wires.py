"""International wires."""

SUPPORTED = {"USD", "EUR"}


async def InternationalTransfer(
    source_account: str, iban: str, amount: float, currency: str
) -> str:
    """Sends an international wire transfer."""
    if currency not in SUPPORTED:
        raise ValueError(f"unsupported currency {currency}")
    return f"WIRE-{source_account}-{iban}-{amount:.2f}-{currency}"


def Transfer(source_account: str, iban: str, amount: float) -> str:
    """Same-currency wire to a foreign account."""
    return f"WIRE-{source_account}-{iban}-{amount:.2f}"
