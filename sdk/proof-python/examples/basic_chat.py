from proof_sdk import GenerationRequest, ProofClient

client = ProofClient()
client.ensure_started()
request = GenerationRequest(model="llama3.2:1b", prompt="How tall is Michael Jordan?")
client.generate_streaming(request, lambda event: print(event.token or "", end="", flush=True))
print()
