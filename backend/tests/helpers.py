PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f"
    b"\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)

ADA = {"name": "Ada", "email": "ada@x.com", "phone": "+10000000000"}


def register(client, files=None, **fields):
    """POST a registration form, Ada's details unless overridden"""
    data = {**ADA, **fields}
    return client.post("/api/users/register", data=data, files=files)


def login(client, email="ada@x.com", password="hunter22"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
