"""
Домен Transcoding: подбор кодирования изображения под бюджет на размер.

Этот домен отвечает за:
1. Декодирование загрузки в неизменяемый SourceImage
2. Одну операцию resize + encode (Codec Adapter)
3. Поиск (quality x width), при котором результат укладывается в бюджет

Граница домена: contracts.FitResult / contracts.TranscodeResult
"""
