"""Per-call relay between Twilio Media Streams and the OpenAI Realtime API.

Each call owns one `MediaRelay`, fed by two connections that share the process
event loop: the inbound Twilio media stream and the outbound model socket.
Business actions requested by the model go through `FunctionDispatcher`.
"""
