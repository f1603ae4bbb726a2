from html import escape

MATCH_SUBJECT = "We Might Have Found Your Lost Item"
ITEM_FOUND_SUBJECT = "Your Lost Item Has Been Found"


def greeting_name(contact: str) -> str:
    name = contact.split("@")[0].strip() if contact else ""
    return name or "there"


def _layout(heading: str, body: str, team_name: str) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
      <h1 style="color: #333; margin-bottom: 20px;">{heading}</h1>
      {body}
      <div style="margin-top: 30px; padding-top: 20px; border-top: 1px solid #e5e7eb;">
        <p style="font-size: 14px; color: #888;">
          Wishing you the best,<br>
          <strong>{escape(team_name)}</strong>
        </p>
      </div>
    </div>
    """


def render_match_email(lost_item, found_item, score: int, team_name: str) -> str:
    description = ""
    if found_item.description:
        description = (
            f'<p style="margin: 10px 0;"><strong>Description:</strong> '
            f"{escape(found_item.description)}</p>"
        )

    body = f"""
      <p style="font-size: 16px; color: #555; line-height: 1.6;">
        Good news! Someone just submitted a found item on our platform, and it looks
        like it might match the item you reported as lost.
      </p>
      <div style="background: #f9fafb; padding: 20px; border-radius: 8px; margin: 20px 0; border-left: 4px solid #4F46E5;">
        <h2 style="color: #4F46E5; margin-top: 0; font-size: 18px;">Here's what our system detected:</h2>
        <p style="margin: 10px 0;"><strong>Possible Match:</strong> {escape(found_item.title)}</p>
        <p style="margin: 10px 0;"><strong>Location Found:</strong> {escape(found_item.location)}</p>
        {description}
        <p style="margin: 10px 0;"><strong>Match Confidence:</strong> {score}%</p>
      </div>
      <p style="font-size: 16px; color: #555; line-height: 1.6;">
        Please log in to the platform and verify if this is your item.
      </p>
    """
    heading = f"Hi {escape(greeting_name(lost_item.contact))},"
    return _layout(heading, body, team_name)


def render_item_found_email(lost_item, team_name: str) -> str:
    body = f"""
      <p style="font-size: 16px; color: #555; line-height: 1.6;">
        Your lost item <strong>{escape(lost_item.title)}</strong>, reported at
        {escape(lost_item.location)}, has been marked as found by our team.
      </p>
      <p style="font-size: 16px; color: #555; line-height: 1.6;">
        Please get in touch with the lost &amp; found desk to arrange the handover.
      </p>
    """
    heading = f"Hi {escape(greeting_name(lost_item.contact))},"
    return _layout(heading, body, team_name)
