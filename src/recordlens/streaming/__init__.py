from recordlens.streaming.channel import BatchChannel, collect, send_sequence, stream_batches

__all__ = ["BatchChannel", "collect", "send_sequence", "stream_batches"]
