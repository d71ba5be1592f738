"""Contacts.app integration (read only)."""

from .applescript import AppleScriptRunner, quote


class ContactsBackend:
    """Look up people in Contacts.app."""

    APP_NAME = "Contacts"

    def __init__(self, runner: AppleScriptRunner):
        self.runner = runner

    async def search(self, name: str) -> str:
        """Phones and emails of the first person whose name contains ``name``."""
        return await self.runner.execute(
            f'tell application "Contacts"\n'
            f"  set thePerson to first person whose name contains {quote(name)}\n"
            f'  set theInfo to "Name: " & name of thePerson & linefeed\n'
            f"  repeat with thePhone in phones of thePerson\n"
            f'    set theInfo to theInfo & "Phone (" & label of thePhone & "): " & value of thePhone & linefeed\n'
            f"  end repeat\n"
            f"  repeat with theEmail in emails of thePerson\n"
            f'    set theInfo to theInfo & "Email (" & label of theEmail & "): " & value of theEmail & linefeed\n'
            f"  end repeat\n"
            f"  return theInfo\n"
            f"end tell",
            self.APP_NAME,
        )

    async def list_contacts(self, limit: int = 50) -> list[str]:
        """Contact names, capped at ``limit``."""
        result = await self.runner.execute(
            f'tell application "Contacts"\n'
            f"  set nameList to {{}}\n"
            f"  set counter to 0\n"
            f"  repeat with thePerson in every person\n"
            f"    if counter >= {int(limit)} then exit repeat\n"
            f"    copy name of thePerson to end of nameList\n"
            f"    set counter to counter + 1\n"
            f"  end repeat\n"
            f"  return nameList\n"
            f"end tell",
            self.APP_NAME,
        )
        return self.runner.parse_list(result)

    async def get_details(self, exact_name: str) -> str:
        """Full card (organization, phones, emails, addresses) for an exact name."""
        return await self.runner.execute(
            f'tell application "Contacts"\n'
            f"  set thePerson to first person whose name is {quote(exact_name)}\n"
            f'  set theInfo to "=== Contact Details ===" & linefeed\n'
            f'  set theInfo to theInfo & "Name: " & name of thePerson & linefeed\n'
            f"  try\n"
            f'    set theInfo to theInfo & "Organization: " & organization of thePerson & linefeed\n'
            f"  end try\n"
            f'  set theInfo to theInfo & linefeed & "Phones:" & linefeed\n'
            f"  repeat with thePhone in phones of thePerson\n"
            f'    set theInfo to theInfo & "  " & label of thePhone & ": " & value of thePhone & linefeed\n'
            f"  end repeat\n"
            f'  set theInfo to theInfo & linefeed & "Emails:" & linefeed\n'
            f"  repeat with theEmail in emails of thePerson\n"
            f'    set theInfo to theInfo & "  " & label of theEmail & ": " & value of theEmail & linefeed\n'
            f"  end repeat\n"
            f'  set theInfo to theInfo & linefeed & "Addresses:" & linefeed\n'
            f"  repeat with theAddress in addresses of thePerson\n"
            f'    set theInfo to theInfo & "  " & label of theAddress & ": " & formatted address of theAddress & linefeed\n'
            f"  end repeat\n"
            f"  return theInfo\n"
            f"end tell",
            self.APP_NAME,
        )

    async def _search_by(self, field: str, label: str, value: str) -> str:
        return await self.runner.execute(
            f'tell application "Contacts"\n'
            f"  try\n"
            f"    set matchingPeople to every person whose (value of {field}s contains {quote(value)})\n"
            f"    if (count of matchingPeople) is 0 then\n"
            f"      return {quote(f'No contact found with {label}: {value}')}\n"
            f"    end if\n"
            f"    set thePerson to item 1 of matchingPeople\n"
            f'    set theInfo to "Name: " & name of thePerson & linefeed\n'
            f"    repeat with theItem in {field}s of thePerson\n"
            f'      set theInfo to theInfo & "{label.capitalize()} (" & label of theItem & "): " & value of theItem & linefeed\n'
            f"    end repeat\n"
            f"    return theInfo\n"
            f"  on error err\n"
            f'    return "Error: " & err\n'
            f"  end try\n"
            f"end tell",
            self.APP_NAME,
        )

    async def search_by_phone(self, phone_number: str) -> str:
        """First person with a phone number containing ``phone_number``."""
        return await self._search_by("phone", "phone number", phone_number)

    async def search_by_email(self, email: str) -> str:
        """First person with an email address containing ``email``."""
        return await self._search_by("email", "email", email)
