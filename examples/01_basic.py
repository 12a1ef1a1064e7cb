"""
Basic usage - Upload one album and print its share link
"""
import asyncio
from albumpy import AlbumUploader, APIConfig, build_destination_root


async def main():
    # Reads ALBUMPY_ACCESS_TOKEN (or the token endpoint / refresh token settings)
    async with AlbumUploader(APIConfig.from_env()) as uploader:

        files = await uploader.load_files(["01.jpg", "02.jpg", "03.jpg"])
        root = build_destination_root("/Orders", "Jane Doe", 1)

        result = await uploader.upload_album("album-1", files, root)
        print(f"Uploaded {result.file_count} photos")
        print(f"Share link: {result.share_url}")


if __name__ == "__main__":
    asyncio.run(main())
