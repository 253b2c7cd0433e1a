from app.services.email_service import EmailService


class CapturingTransport:
    def __init__(self, error=None):
        self.messages = []
        self.error = error

    async def __call__(self, message):
        if self.error is not None:
            raise self.error
        self.messages.append(message)


def parts(message):
    return {part.get_content_type(): part.get_payload(decode=True).decode("utf-8") for part in message.get_payload()}


async def test_registration_notice_has_text_and_html_parts():
    transport = CapturingTransport()
    mailer = EmailService(transport=transport, enabled=True)

    result = await mailer.send_registration_notice("ada@x.com", "Ada")

    assert result.success is True
    assert result.message_id
    message = transport.messages[0]
    assert message["To"] == "ada@x.com"
    assert "Welcome" in message["Subject"]
    bodies = parts(message)
    assert "Hi Ada," in bodies["text/plain"]
    assert "Hi Ada," in bodies["text/html"]
    assert "http://frontend.test" in bodies["text/plain"]


async def test_html_part_escapes_user_input():
    transport = CapturingTransport()
    mailer = EmailService(transport=transport, enabled=True)

    await mailer.send_registration_notice("ada@x.com", "<script>alert(1)</script>")

    html_body = parts(transport.messages[0])["text/html"]
    assert "<script>" not in html_body
    assert "&lt;script&gt;" in html_body


async def test_verification_notice_embeds_link():
    transport = CapturingTransport()
    mailer = EmailService(transport=transport, enabled=True)

    result = await mailer.send_verification_notice("ada@x.com", "Ada", "tok123")

    assert result.success is True
    bodies = parts(transport.messages[0])
    assert "http://frontend.test/verify?token=tok123" in bodies["text/plain"]
    assert "http://frontend.test/verify?token=tok123" in bodies["text/html"]
    assert "expire in 24 hours" in bodies["text/plain"]


async def test_transport_failure_is_returned_not_raised():
    mailer = EmailService(transport=CapturingTransport(error=ConnectionRefusedError("no smtp")), enabled=True)

    result = await mailer.send_registration_notice("ada@x.com", "Ada")

    assert result.success is False
    assert "no smtp" in result.error


async def test_disabled_mailer_sends_nothing():
    transport = CapturingTransport()
    mailer = EmailService(transport=transport, enabled=False)

    result = await mailer.send_verification_notice("ada@x.com", "Ada", "tok")

    assert result.success is False
    assert transport.messages == []
