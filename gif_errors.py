# -------- error taxonomy --------
class GifError(ValueError):
    pass

class MalformedHeader(GifError):
    pass

class MissingGlobalColorTable(GifError):
    pass

class TruncatedRead(GifError):
    pass

class OutOfMemory(GifError):
    pass

class CorruptImageData(GifError):
    pass
