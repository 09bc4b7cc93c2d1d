# lyrics.py - QRC歌词解码API

import json

from flask import Flask, request, make_response
from werkzeug.exceptions import HTTPException

from . import __version__
from .config import Config, ENV_PREFIX
from .errors import QRCDecodeError
from .lyric_xml import decode_lyric_response, extract_lyric_content, is_lyric_xml
from .qrc import decode_hex, decode_qrc

app = Flask(__name__)
app.config.from_object(Config)
app.config.from_prefixed_env(ENV_PREFIX)

# 全局设置JSON确保不使用ASCII编码
app.json.ensure_ascii = app.config['JSON_ENSURE_ASCII']

DEBUG_PREVIEW_CHARS = 500


# ================ CORS 支持 ================
@app.after_request
def after_request(response):
    response.headers.add('Access-Control-Allow-Origin', '*')
    response.headers.add('Access-Control-Allow-Headers', 'Content-Type,Authorization')
    response.headers.add('Access-Control-Allow-Methods', 'GET,POST,OPTIONS')
    return response


# ================ 辅助函数：返回JSON响应 ================
def json_response(data, status_code=200):
    """返回JSON响应，确保中文字符不被转义"""
    response = make_response(
        json.dumps(data, ensure_ascii=app.config['JSON_ENSURE_ASCII'], indent=None)
    )
    response.headers['Content-Type'] = 'application/json; charset=utf-8'
    response.status_code = status_code
    return response


def max_output_size():
    return app.config['MAX_OUTPUT_SIZE'] or None


def wants_extract():
    return request.args.get('extract', '').lower() in ('1', 'true', 'yes')


def render_lyrics(decoded):
    text = decoded.decode('utf-8', errors='replace')
    is_xml = is_lyric_xml(text)
    if is_xml and wants_extract():
        text = extract_lyric_content(text)
    return text, is_xml


# ================ 错误处理 ================
@app.errorhandler(QRCDecodeError)
def handle_decode_error(e):
    app.logger.info('decode failed at %s: %s', e.stage, e)
    return json_response({
        'success': False,
        'error': str(e),
        'stage': e.stage,
    }, 400)


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return json_response({
            'success': False,
            'error': e.description,
        }, e.code)
    app.logger.exception('unexpected error while serving %s', request.path)
    return json_response({
        'success': False,
        'error': '服务器内部错误',
    }, 500)


# ================ Flask 路由 ================
@app.route('/')
def index():
    return json_response({
        'name': 'QRC歌词解码API',
        'version': __version__,
        'description': '解密并解压QQ音乐QRC逐字歌词文件',
        'endpoints': {
            '/api/decode': 'POST 原始QRC文件内容（请求体或file字段）',
            '/api/debug?hex=<hex>': '解密在线接口返回的16进制歌词',
            '/api/lyrics': 'POST 歌词下载接口返回的XML，解密原文、翻译和罗马音',
            '/api/test': '测试接口'
        },
        'note': '加上 extract=1 只返回LyricContent内容'
    })


@app.route('/api/decode', methods=['POST'])
def decode():
    """解码上传的QRC文件"""
    upload = request.files.get('file')
    data = upload.read() if upload is not None else request.get_data()
    if not data:
        return json_response({
            'success': False,
            'error': '缺少QRC数据，请在请求体或file字段中上传',
        }, 400)

    decoded = decode_qrc(data, max_output_size())
    lyrics, is_xml = render_lyrics(decoded)
    app.logger.debug('decoded %d bytes into %d bytes', len(data), len(decoded))
    return json_response({
        'success': True,
        'length': len(lyrics),
        'is_xml': is_xml,
        'lyrics': lyrics,
    })


@app.route('/api/lyrics', methods=['POST'])
def lyrics():
    """解密歌词下载接口返回的XML（原文 + 翻译 + 罗马音）"""
    xml_content = request.get_data(as_text=True)
    if not xml_content.strip():
        return json_response({
            'success': False,
            'error': '缺少XML数据',
        }, 400)

    result = decode_lyric_response(xml_content, max_output_size())
    if not any(result.values()):
        return json_response({
            'success': False,
            'error': '未找到歌词或歌词解析失败',
            'note': '可能是歌曲没有歌词，或者歌词格式不支持'
        }, 404)

    return json_response({
        'success': True,
        'lyric': result,
        'has_trans': bool(result['trans']),
        'has_roma': bool(result['roma']),
    })


@app.route('/api/test', methods=['GET'])
def test():
    """测试接口"""
    return json_response({
        'success': True,
        'message': 'API运行正常',
        'version': __version__,
    })


@app.route('/api/debug', methods=['GET'])
def debug():
    """调试接口：直接解密16进制数据"""
    hex_str = request.args.get('hex')
    if not hex_str:
        return json_response({
            'success': False,
            'error': '缺少hex参数',
            'example': '/api/debug?hex=加密的16进制字符串'
        }, 400)

    decrypted, is_xml = render_lyrics(decode_hex(hex_str, max_output_size()))
    return json_response({
        'success': True,
        'original_length': len(hex_str),
        'decrypted_length': len(decrypted),
        'decrypted': (decrypted[:DEBUG_PREVIEW_CHARS] + '...'
                      if len(decrypted) > DEBUG_PREVIEW_CHARS else decrypted),
        'is_xml': is_xml,
    })


# 用于Vercel
application = app

if __name__ == '__main__':
    app.run(debug=True)
